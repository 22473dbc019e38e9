from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from warden_core import __version__
from warden_core.api.models import ApiResponse, ok
from warden_core.api.v1.jwt_customizer import router as jwt_customizer_router
from warden_core.api.v1.tenants import router as tenants_router

router = APIRouter(prefix="/v1", tags=["v1"])

router.include_router(tenants_router)
router.include_router(jwt_customizer_router)


class SystemInfo(BaseModel):
    version: str
    warden_home: str
    paths: dict[str, str]
    cloud_enabled: bool
    default_tenant_id: str


@router.get("/ping", response_model=ApiResponse[dict[str, bool]])
async def ping() -> ApiResponse[dict[str, bool]]:
    return ok({"pong": True})


@router.get("/system/info", response_model=ApiResponse[SystemInfo])
async def system_info(request: Request) -> ApiResponse[SystemInfo]:
    # Runtime identity and resolved paths only; never secrets.
    home = getattr(request.app.state, "warden_home", None)
    paths = getattr(request.app.state, "warden_paths", None)
    config = getattr(request.app.state, "warden_config", None)

    info = SystemInfo(
        version=__version__,
        warden_home=str(home) if home is not None else "",
        paths={
            "db_dir": str(paths.db_dir) if paths is not None else "",
            "logs_dir": str(paths.logs_dir) if paths is not None else "",
            "config_dir": str(paths.config_dir) if paths is not None else "",
            "run_dir": str(paths.run_dir) if paths is not None else "",
        },
        cloud_enabled=bool(config is not None and config.cloud.enabled),
        default_tenant_id=config.tenancy.default_tenant_id if config is not None else "",
    )
    return ok(info)
