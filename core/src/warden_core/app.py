from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from warden_core import __version__
from warden_core.api.models import fail_response
from warden_core.api.v1.router import router as v1_router
from warden_core.auth import (
    expected_admin_token,
    extract_token_from_request,
    is_exempt_path,
    require_admin_token,
    tokens_match,
)
from warden_core.cloud import CloudConnection
from warden_core.config import ensure_admin_token, load_core_config, resolve_configured_paths
from warden_core.db import resolve_db_path
from warden_core.db.migrate import apply_migrations
from warden_core.db.tenants import ensure_tenant
from warden_core.errors import WardenError
from warden_core.home import ensure_warden_layout, resolve_warden_home

logger = logging.getLogger(__name__)


def _status_to_code(status_code: int) -> str:
    if status_code == 401:
        return "unauthorized"
    if status_code == 403:
        return "forbidden"
    if status_code == 404:
        return "not_found"
    if status_code == 405:
        return "method_not_allowed"
    if status_code == 409:
        return "conflict"
    if status_code == 422:
        return "validation_error"
    if 400 <= status_code < 500:
        return "client_error"
    return "server_error"


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may carry exception instances, which are not JSON-serializable.
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


def create_app(*, cloud_transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the Warden Core application.

    `cloud_transport` replaces the network transport of the cloud connection; tests use
    it to stand in for the external script-execution service.
    """

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        home = resolve_warden_home()
        paths = ensure_warden_layout(home)
        config = load_core_config(paths)
        paths = resolve_configured_paths(paths, config)
        config = ensure_admin_token(paths, config)

        log_path = paths.logs_dir / "core.log"
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.logging.max_size_mb * 1024 * 1024,
            backupCount=config.logging.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

        root = logging.getLogger()
        root.setLevel(config.logging.level.upper())
        # Avoid duplicate handlers when the app is recreated in one process.
        if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
            root.addHandler(file_handler)
        else:
            file_handler.close()

        logger.info("Warden Core %s starting up", __version__)
        logger.info("Logs directory: %s", paths.logs_dir)

        db_path = resolve_db_path(paths)
        apply_migrations(db_path)
        ensure_tenant(db_path, tenant_id=config.tenancy.default_tenant_id)

        app.state.warden_home = home
        app.state.warden_paths = paths
        app.state.warden_config = config
        app.state.db_path = db_path
        app.state.cloud_connection = CloudConnection(config.cloud, transport=cloud_transport)

        if config.cloud.enabled:
            logger.info("Cloud connection enabled: %s", config.cloud.endpoint)
        else:
            logger.info("Cloud connection disabled; JWT customizer scripts will not be deployed")

        yield

        logger.info("Warden Core shutting down")

    app = FastAPI(title="Warden Core", version=__version__, lifespan=_lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    class _TokenAuthMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next) -> Response:
            if is_exempt_path(request.url.path):
                return await call_next(request)

            expected_token = expected_admin_token(request)
            if not expected_token:
                return fail_response(
                    500, code="internal_error", message="Server auth token not initialized"
                )

            provided = extract_token_from_request(request)
            if not provided:
                return fail_response(401, code="unauthorized", message="Missing token")
            if not tokens_match(provided, expected_token):
                return fail_response(401, code="unauthorized", message="Invalid token")

            return await call_next(request)

    app.add_middleware(_TokenAuthMiddleware)

    @app.exception_handler(WardenError)
    async def _warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
        return fail_response(
            exc.status_code, code=exc.code, message=exc.message, details=exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return fail_response(
            422,
            code="validation_error",
            message="Request validation failed",
            details=_jsonable_errors(exc),
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return fail_response(
            exc.status_code, code=_status_to_code(exc.status_code), message=str(exc.detail)
        )

    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return fail_response(
            exc.status_code,
            code=_status_to_code(exc.status_code),
            message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return fail_response(500, code="internal_error", message="Internal server error")

    app.include_router(v1_router, dependencies=[Depends(require_admin_token)])

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
