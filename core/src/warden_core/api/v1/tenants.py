from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from warden_core.api.models import ApiResponse, ok
from warden_core.db.tenants import TenantRow, create_tenant, list_tenants
from warden_core.errors import WardenError

router = APIRouter(tags=["tenants"])


class Tenant(BaseModel):
    tenant_id: str
    name: str | None = None
    created_at: str


def _to_tenant(row: TenantRow) -> Tenant:
    return Tenant(tenant_id=row.tenant_id, name=row.name, created_at=row.created_at)


class TenantCreateRequest(BaseModel):
    tenant_id: str = Field(pattern=r"^[a-z0-9][a-z0-9-]{0,63}$")
    name: str | None = Field(default=None, max_length=128)


@router.get("/tenants", response_model=ApiResponse[dict[str, list[Tenant]]])
async def tenants_list(request: Request) -> ApiResponse[dict[str, list[Tenant]]]:
    rows = list_tenants(request.app.state.db_path)
    return ok({"items": [_to_tenant(r) for r in rows]})


@router.post("/tenants", status_code=201, response_model=ApiResponse[Tenant])
async def tenants_create(request: Request, payload: TenantCreateRequest) -> ApiResponse[Tenant]:
    row = create_tenant(request.app.state.db_path, tenant_id=payload.tenant_id, name=payload.name)
    if row is None:
        raise WardenError(
            status_code=409,
            code="tenant.already_exists",
            message=f"Tenant already exists: {payload.tenant_id}",
        )
    return ok(_to_tenant(row))
