from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (Docker creates one when a missing
    bind-mounted file path is used), the DB file goes inside it.
    """
    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "aer.db")

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
              workload TEXT,
              container TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS passes (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              workload TEXT NOT NULL,
              container TEXT NOT NULL,
              state TEXT NOT NULL, -- ok|failed|skipped
              wrote INTEGER NOT NULL,
              env_count INTEGER,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_passes_workload ON passes(workload);
            """
        )


def log_event(level: str, message: str, workload: str | None = None, container: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, workload, container, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level.upper(), workload, container, message),
        )


@dataclass(frozen=True)
class PassRow:
    id: int
    ts: str
    workload: str
    container: str
    state: str
    wrote: int
    env_count: int | None
    message: str


def record_pass(
    workload: str,
    container: str,
    state: str,
    wrote: bool,
    message: str,
    env_count: int | None = None,
) -> PassRow:
    with connect() as conn:
        cur = conn.execute(
            """
            INSERT INTO passes (ts, workload, container, state, wrote, env_count, message)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (utc_now(), workload, container, state, int(wrote), env_count, message),
        )
        row = conn.execute("SELECT * FROM passes WHERE id=?", (cur.lastrowid,)).fetchone()
        return PassRow(**dict(row))


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


def latest_passes(limit: int = 100, workload: str | None = None) -> list[PassRow]:
    with connect() as conn:
        if workload:
            rows = conn.execute(
                "SELECT * FROM passes WHERE workload=? ORDER BY id DESC LIMIT ?", (workload, limit)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM passes ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [PassRow(**dict(r)) for r in rows]
