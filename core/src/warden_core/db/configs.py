from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from warden_core.db import connect, utc_now_iso


@dataclass(frozen=True)
class ConfigRow:
    tenant_id: str
    key: str
    value: Any
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class ConfigRows:
    rows: list[ConfigRow]

    @property
    def row_count(self) -> int:
        return len(self.rows)


def _loads_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {}


def _row_from_db(row: sqlite3.Row) -> ConfigRow:
    return ConfigRow(
        tenant_id=row["tenant_id"],
        key=row["key"],
        value=_loads_json(row["value_json"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


_SELECT_COLUMNS = "tenant_id, key, value_json, created_at, updated_at"


def get_rows_by_keys(db_path, *, tenant_id: str, keys: Iterable[str]) -> ConfigRows:
    wanted = list(dict.fromkeys(keys))
    if not wanted:
        return ConfigRows(rows=[])

    placeholders = ", ".join("?" for _ in wanted)
    with connect(db_path) as conn:
        rows = conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS}
            FROM configs
            WHERE tenant_id = ? AND key IN ({placeholders})
            ORDER BY key ASC;
            """.strip(),
            [tenant_id, *wanted],
        ).fetchall()

    return ConfigRows(rows=[_row_from_db(r) for r in rows])


def list_configs(db_path, *, tenant_id: str, key_prefix: str | None = None) -> list[ConfigRow]:
    where = "WHERE tenant_id = ?"
    params: list[Any] = [tenant_id]
    if key_prefix:
        where += " AND substr(key, 1, ?) = ?"
        params.extend([len(key_prefix), key_prefix])

    with connect(db_path) as conn:
        rows = conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS}
            FROM configs
            {where}
            ORDER BY key ASC;
            """.strip(),
            params,
        ).fetchall()

    return [_row_from_db(r) for r in rows]


def upsert_config(db_path, *, tenant_id: str, key: str, value: Any) -> ConfigRow:
    now = utc_now_iso()
    value_json = json.dumps(value, ensure_ascii=False)

    with connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO configs (tenant_id, key, value_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(tenant_id, key) DO UPDATE SET
                value_json = excluded.value_json,
                updated_at = excluded.updated_at;
            """.strip(),
            (tenant_id, key, value_json, now, now),
        )

        row = conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM configs WHERE tenant_id = ? AND key = ?;",
            (tenant_id, key),
        ).fetchone()

    if row is None:
        raise RuntimeError("Failed to read config row after upsert")

    return _row_from_db(row)


def delete_config(db_path, *, tenant_id: str, key: str) -> int:
    with connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM configs WHERE tenant_id = ? AND key = ?;",
            (tenant_id, key),
        )
        return cur.rowcount
