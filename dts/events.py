from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Action(str, Enum):
    START = "start"
    RUNNING = "running"
    STOP = "stop"
    DIE = "die"

    @property
    def is_up(self) -> bool:
        return self in (Action.START, Action.RUNNING)


# Docker action name -> Action. "running" never comes from the daemon; the
# snapshot producer emits it for containers that were already up.
ACTION_TABLE: dict[str, Action] = {
    "start": Action.START,
    "running": Action.RUNNING,
    "unpause": Action.RUNNING,
    "stop": Action.STOP,
    "die": Action.DIE,
}


def action_from_name(name: str | None) -> Action | None:
    """Map a docker action name to an Action, or None when unrecognized."""
    if not name:
        return None
    return ACTION_TABLE.get(name.strip().lower())


@dataclass(frozen=True)
class Event:
    action: Action
    workload_id: str
    name: str
    recorded_at: datetime = field(default_factory=utc_now)
