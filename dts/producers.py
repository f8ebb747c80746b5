from __future__ import annotations

import time
from typing import Any

from . import db
from .docker_ops import DOCKER_ERRORS, STREAM_ERRORS, ContainerRuntime, job_name
from .eventlog import EventLog
from .events import Action, Event, action_from_name
from .settings import settings


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class LabelParseError(ValueError):
    pass


def parse_opt_in(value: str) -> bool:
    """Parse an opt-in label value. Accepts 1/t/true and 0/f/false spellings.

    Whitespace is not trimmed: " true " is invalid.
    """
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise LabelParseError(f"invalid boolean label value {value!r}")


class SnapshotProducer:
    """Seeds the log with a RUNNING event for every opted-in running container."""

    def __init__(self, runtime: ContainerRuntime, label: str | None = None):
        self.runtime = runtime
        self.label = label or settings.opt_in_label

    def produce_events_for(self, el: EventLog) -> int:
        try:
            workloads = self.runtime.list_workloads(self.label)
        except DOCKER_ERRORS as e:
            db.log_event("ERROR", f"Listing containers failed: {type(e).__name__}: {e}")
            return 0

        pushed = 0
        for w in workloads:
            if not w.running or self.label not in w.labels:
                continue
            try:
                is_target = parse_opt_in(w.labels[self.label])
            except LabelParseError as e:
                db.log_event("WARN", f"Skipping container: {e}", workload=w.id)
                continue
            if not is_target:
                continue
            name = job_name(w.labels, w.name)
            if not name:
                db.log_event("WARN", "Skipping container without a job name", workload=w.id)
                continue
            el.push(Event(action=Action.RUNNING, workload_id=w.id, name=name))
            pushed += 1

        db.log_event("INFO", f"Snapshot found {pushed} scrape target(s)")
        return pushed


class StreamProducer:
    """Translates the docker event stream into log events. Never returns."""

    def __init__(self, runtime: ContainerRuntime, label: str | None = None, retry_s: float | None = None):
        self.runtime = runtime
        self.label = label or settings.opt_in_label
        self.retry_s = settings.stream_retry_s if retry_s is None else retry_s

    def produce_events_for(self, el: EventLog) -> None:
        while True:
            try:
                self.consume_subscription(el)
            except Exception as e:
                db.log_event("ERROR", f"Event stream failed: {type(e).__name__}: {e}")
            time.sleep(max(0.0, self.retry_s))

    def consume_subscription(self, el: EventLog) -> int:
        """Drain one subscription until it ends or breaks. Returns events pushed."""
        pushed = 0
        try:
            for raw in self.runtime.events(self.label):
                event = self.translate(raw)
                if event is not None:
                    el.push(event)
                    pushed += 1
        except STREAM_ERRORS as e:
            db.log_event("ERROR", f"Receiving docker events failed: {type(e).__name__}: {e}")
            return pushed
        db.log_event("WARN", "Docker event stream ended; resubscribing")
        return pushed

    def translate(self, raw: dict[str, Any]) -> Event | None:
        name_of_action = raw.get("Action") or raw.get("status")
        actor = raw.get("Actor") or {}
        workload_id = actor.get("ID") or raw.get("id") or ""
        attributes = actor.get("Attributes") or {}

        action = action_from_name(name_of_action)
        if action is None:
            db.log_event("WARN", f"Dropping unrecognized docker action {name_of_action!r}", workload=workload_id or None)
            return None

        if not self._opted_in(attributes, workload_id):
            return None

        name = job_name(attributes)
        if not workload_id or not name:
            db.log_event("WARN", f"Dropping {action.value} event without container id or job name", workload=workload_id or None)
            return None
        return Event(action=action, workload_id=workload_id, name=name)

    def _opted_in(self, attributes: dict[str, str], workload_id: str) -> bool:
        # The daemon only filters on the label key; values like "1" or "True"
        # count, matching what the snapshot accepts.
        if self.label not in attributes:
            return False
        try:
            return parse_opt_in(attributes[self.label])
        except LabelParseError as e:
            db.log_event("WARN", f"Dropping event: {e}", workload=workload_id or None)
            return False


class ProducerManager:
    """Runs the snapshot producer, then the stream producer, on the calling thread."""

    def __init__(self, producers: list[Any]):
        self.producers = list(producers)

    @classmethod
    def for_runtime(cls, runtime: ContainerRuntime) -> "ProducerManager":
        return cls([SnapshotProducer(runtime), StreamProducer(runtime)])

    def run(self, el: EventLog) -> None:
        for p in self.producers:
            p.produce_events_for(el)
