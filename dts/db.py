from __future__ import annotations

import os
import sqlite3
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (docker creates one when a missing
    bind-mount file is mounted), the journal lives inside it as dts.db.
    """
    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "dts.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              job TEXT,
              workload TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS cycles (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              drained INTEGER NOT NULL,
              coalesced INTEGER NOT NULL,
              targets INTEGER NOT NULL,
              published INTEGER NOT NULL,
              reloaded INTEGER NOT NULL,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, job: str | None = None, workload: str | None = None) -> None:
    ts = utc_now()
    level = level.upper()
    ctx = "".join(f" {k}={v}" for k, v in (("job", job), ("workload", workload)) if v)
    print(f"{ts} {level:<5} {message}{ctx}", flush=True)
    # Journal failures go to stderr and are never raised.
    try:
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, job, workload, message) VALUES (?, ?, ?, ?, ?)",
                (ts, level, job, workload, message),
            )
    except (sqlite3.Error, OSError) as e:
        print(f"{ts} ERROR journal write failed: {type(e).__name__}: {e}", file=sys.stderr, flush=True)


@dataclass(frozen=True)
class CycleRow:
    id: int
    ts: str
    drained: int
    coalesced: int
    targets: int
    published: bool
    reloaded: bool
    message: str


def record_cycle(
    drained: int,
    coalesced: int,
    targets: int,
    published: bool,
    reloaded: bool,
    message: str,
) -> None:
    with connect() as conn:
        conn.execute(
            """
            INSERT INTO cycles (ts, drained, coalesced, targets, published, reloaded, message)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (utc_now(), drained, coalesced, targets, int(published), int(reloaded), message),
        )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


def latest_cycles(limit: int = 20) -> list[CycleRow]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM cycles ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
    out: list[CycleRow] = []
    for r in rows:
        d = dict(r)
        d["published"] = bool(d["published"])
        d["reloaded"] = bool(d["reloaded"])
        out.append(CycleRow(**d))
    return out
