from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock, Thread
from typing import Callable

import yaml

from . import db
from .docker_ops import DOCKER_ERRORS, ContainerRuntime, PortNotPublished
from .eventlog import EventLog
from .events import Event
from .reload import send_reload
from .settings import settings
from .targets import TargetStateError, load_targets, publish_targets


@dataclass(frozen=True)
class CycleResult:
    drained: int
    coalesced: int
    targets: int
    published: bool
    reloaded: bool
    message: str


def coalesce(events: list[Event]) -> dict[str, Event]:
    """Collapse events per container; the last one recorded wins."""
    out: dict[str, Event] = {}
    for e in events:
        out[e.workload_id] = e
    return out


class Consumer:
    """Periodically turns the drained event log into a new target file."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        event_log: EventLog,
        config_path: str | None = None,
        interval_s: int | None = None,
        reload: Callable[[], tuple[bool, str]] = send_reload,
    ):
        self.runtime = runtime
        self.event_log = event_log
        self.config_path = config_path or settings.config_path
        self.interval_s = settings.consume_interval_s if interval_s is None else interval_s
        self.reload = reload
        self._cycle_lock = Lock()
        self._stop = False
        self._thr: Thread | None = None

    def start(self) -> None:
        # A thread still sleeping after stop() picks the flag back up.
        self._stop = False
        if self._thr and self._thr.is_alive():
            return
        self._thr = Thread(target=self._loop, name="dts-consumer", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop = True

    def _loop(self) -> None:
        db.log_event("INFO", f"Consumer started (interval {self.interval_s}s)")
        while not self._stop:
            time.sleep(max(1, self.interval_s))
            if self._stop:
                break
            try:
                self.consume()
            except Exception as e:
                db.log_event("ERROR", f"Consumer cycle failed: {type(e).__name__}: {e}")

    def consume(self) -> CycleResult | None:
        """Run one reconciliation cycle. Returns None when nothing was drained."""
        with self._cycle_lock:
            events = self.event_log.flush()
            if not events:
                return None
            return self._reconcile(events)

    def _reconcile(self, events: list[Event]) -> CycleResult:
        coalesced = coalesce(events)

        try:
            state = load_targets(self.config_path)
        except TargetStateError as e:
            msg = f"Loading current targets failed, dropping {len(events)} event(s): {e}"
            db.log_event("ERROR", msg)
            return self._finish(len(events), len(coalesced), 0, False, False, msg)

        new_state = self.diff(coalesced, state)

        published = True
        try:
            publish_targets(new_state, self.config_path)
        except (OSError, yaml.YAMLError) as e:
            published = False
            db.log_event("ERROR", f"Publishing scrape targets failed: {type(e).__name__}: {e}")

        reloaded, reload_msg = self.reload()
        if reloaded:
            db.log_event("INFO", "Sent reload signal to prometheus")
        else:
            db.log_event("ERROR", f"Reload signal failed: {reload_msg}")

        msg = f"{len(new_state)} target(s); publish {'ok' if published else 'failed'}; reload: {reload_msg}"
        return self._finish(len(events), len(coalesced), len(new_state), published, reloaded, msg)

    def _finish(
        self, drained: int, coalesced: int, targets: int, published: bool, reloaded: bool, message: str
    ) -> CycleResult:
        db.record_cycle(drained, coalesced, targets, published, reloaded, message)
        return CycleResult(drained, coalesced, targets, published, reloaded, message)

    def diff(self, events: dict[str, Event], state: dict[str, str]) -> dict[str, str]:
        """Apply coalesced events to `state` and return the new mapping.

        Up events (start/running) upsert job -> address; down events
        (stop/die) remove the job. Both are keyed by job name.
        """
        new_state = dict(state)
        for e in events.values():
            if e.action.is_up:
                try:
                    address = self.runtime.published_address(e.workload_id)
                except PortNotPublished as exc:
                    db.log_event("WARN", f"Skipping target: {exc}", job=e.name, workload=e.workload_id)
                    continue
                except DOCKER_ERRORS as exc:
                    db.log_event(
                        "ERROR",
                        f"Inspecting container failed: {type(exc).__name__}: {exc}",
                        job=e.name,
                        workload=e.workload_id,
                    )
                    continue
                if new_state.get(e.name) != address:
                    db.log_event("INFO", f"Adding target {address}", job=e.name, workload=e.workload_id)
                new_state[e.name] = address
            elif new_state.pop(e.name, None) is not None:
                db.log_event("INFO", f"Removing target ({e.action.value})", job=e.name, workload=e.workload_id)
        return new_state
