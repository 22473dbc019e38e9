from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from warden_core.cloud import CloudConnection
from warden_core.db.tenants import get_tenant, is_valid_tenant_id
from warden_core.errors import WardenError, tenant_not_found

TENANT_HEADER: Final[str] = "X-Warden-Tenant"

_tenant_header_scheme = APIKeyHeader(
    name=TENANT_HEADER,
    scheme_name="WardenTenant",
    auto_error=False,
    description="Tenant to operate on; defaults to the configured default tenant.",
)


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    db_path: Path
    cloud_connection: CloudConnection


def _app_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise WardenError(
            status_code=500, code="internal_error", message="Server not initialized"
        )
    return value


async def get_tenant_context(
    request: Request,
    tenant_header: str | None = Security(_tenant_header_scheme),  # noqa: B008
) -> TenantContext:
    db_path = _app_state(request, "db_path")
    cloud = _app_state(request, "cloud_connection")
    config = _app_state(request, "warden_config")

    tenant_id = (tenant_header or "").strip() or config.tenancy.default_tenant_id
    if not is_valid_tenant_id(tenant_id):
        raise WardenError(
            status_code=422,
            code="validation_error",
            message="Invalid tenant id",
            details={"tenant_id": tenant_id},
        )

    if get_tenant(db_path, tenant_id=tenant_id) is None:
        raise tenant_not_found(tenant_id)

    return TenantContext(tenant_id=tenant_id, db_path=db_path, cloud_connection=cloud)
