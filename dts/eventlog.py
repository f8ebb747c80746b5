from __future__ import annotations

from threading import Lock

from .events import Event


class EventLog:
    """Hand-off buffer between the producer thread and the consumer thread.

    push() never blocks beyond the lock; flush() drains everything recorded so
    far, in arrival order, and leaves the log empty.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._events: list[Event] = []

    def push(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    def flush(self) -> list[Event]:
        with self._lock:
            out, self._events = self._events, []
        return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
