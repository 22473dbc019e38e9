from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass

from warden_core.db import connect, utc_now_iso

TENANT_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")


@dataclass(frozen=True)
class TenantRow:
    tenant_id: str
    name: str | None
    created_at: str


def is_valid_tenant_id(tenant_id: str) -> bool:
    return bool(TENANT_ID_PATTERN.fullmatch(tenant_id))


def _row_from_db(row: sqlite3.Row) -> TenantRow:
    return TenantRow(tenant_id=row["tenant_id"], name=row["name"], created_at=row["created_at"])


def get_tenant(db_path, *, tenant_id: str) -> TenantRow | None:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT tenant_id, name, created_at FROM tenants WHERE tenant_id = ?;",
            (tenant_id,),
        ).fetchone()
    return _row_from_db(row) if row is not None else None


def list_tenants(db_path) -> list[TenantRow]:
    with connect(db_path) as conn:
        rows = conn.execute(
            "SELECT tenant_id, name, created_at FROM tenants ORDER BY tenant_id ASC;"
        ).fetchall()
    return [_row_from_db(r) for r in rows]


def create_tenant(db_path, *, tenant_id: str, name: str | None = None) -> TenantRow | None:
    """Insert a tenant; returns None if the id is already taken."""

    with connect(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO tenants (tenant_id, name, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(tenant_id) DO NOTHING;
            """.strip(),
            (tenant_id, name, utc_now_iso()),
        )
        if cur.rowcount == 0:
            return None

    return get_tenant(db_path, tenant_id=tenant_id)


def ensure_tenant(db_path, *, tenant_id: str, name: str | None = None) -> TenantRow:
    created = create_tenant(db_path, tenant_id=tenant_id, name=name)
    if created is not None:
        return created

    existing = get_tenant(db_path, tenant_id=tenant_id)
    if existing is None:
        raise RuntimeError(f"Failed to ensure tenant {tenant_id!r}")
    return existing
