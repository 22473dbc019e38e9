from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from warden_core.home import WardenPaths

DEFAULT_DB_FILENAME = "core.sqlite3"


def resolve_db_path(paths: WardenPaths) -> Path:
    """Resolve the Core SQLite database path (under the configurable `db_dir`)."""

    return paths.db_dir / DEFAULT_DB_FILENAME


def connect(db_path) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
