from __future__ import annotations

import logging
from pathlib import Path

from warden_core.db import connect
from warden_core.db.migrations import MIGRATIONS

logger = logging.getLogger(__name__)


def apply_migrations(db_path: Path) -> list[str]:
    """Bring a SQLite DB up to the latest schema.

    Idempotent; returns the names of the migrations applied by this call.
    """

    db_path.parent.mkdir(parents=True, exist_ok=True)

    newly_applied: list[str] = []
    with connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " name TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"
            ");"
        )
        applied = {row["name"] for row in conn.execute("SELECT name FROM schema_migrations;")}

        for name, sql in MIGRATIONS:
            if name in applied:
                continue
            conn.executescript(sql)
            conn.execute("INSERT INTO schema_migrations (name) VALUES (?);", (name,))
            newly_applied.append(name)

    for name in newly_applied:
        logger.info("Applied migration %s to %s", name, db_path)
    return newly_applied
