from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from pydantic import ValidationError

from warden_core.cloud import CloudConnectionError, CloudResponseError
from warden_core.db.configs import get_rows_by_keys
from warden_core.errors import WardenError
from warden_core.jwt_customizer.library import (
    delete_jwt_customizer,
    deploy_jwt_customizer_script,
    get_jwt_customizer,
    get_jwt_customizers,
    run_jwt_customizer_test,
    undeploy_jwt_customizer_script,
    update_jwt_customizer,
    upsert_jwt_customizer,
)
from warden_core.jwt_customizer.models import (
    JwtCustomizerEntry,
    JwtCustomizerTestRequest,
    JwtTokenType,
    key_for_token_type,
    validate_jwt_customizer,
)
from warden_core.tenancy import TenantContext, get_tenant_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/configs/jwt-customizer", tags=["jwt-customizer"])


@contextmanager
def _cloud_errors(action: str, *, tenant_id: str, key: str) -> Iterator[None]:
    try:
        yield
    except CloudResponseError as e:
        logger.error(
            "Cloud %s failed for tenant %s key %s: %s %s",
            action,
            tenant_id,
            key,
            e.status_code,
            e.message,
        )
        raise WardenError(
            status_code=502,
            code="cloud.request_failed",
            message=f"Cloud {action} failed: {e.message}",
            details={"status": e.status_code},
        ) from e
    except CloudConnectionError as e:
        logger.error("Cloud %s failed for tenant %s key %s: %s", action, tenant_id, key, e)
        raise WardenError(
            status_code=502,
            code="cloud.unreachable",
            message=f"Cloud {action} failed: service unreachable",
        ) from e


@contextmanager
def _validation_errors() -> Iterator[None]:
    try:
        yield
    except ValidationError as e:
        raise WardenError(
            status_code=422,
            code="validation_error",
            message="Invalid JWT customizer",
            details=e.errors(include_url=False, include_context=False),
        ) from e


@router.get("", response_model=list[JwtCustomizerEntry])
async def jwt_customizers_list(
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> list[JwtCustomizerEntry]:
    customizers = get_jwt_customizers(ctx.db_path, tenant_id=ctx.tenant_id)
    return [JwtCustomizerEntry(key=key, value=value) for key, value in customizers.items()]


@router.get("/{token_type}")
async def jwt_customizer_get(
    token_type: JwtTokenType,
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> dict[str, Any]:
    key = key_for_token_type(token_type)
    return get_jwt_customizer(ctx.db_path, tenant_id=ctx.tenant_id, key=key)


@router.put(
    "/{token_type}",
    responses={201: {"description": "Created"}, 200: {"description": "Replaced"}},
)
async def jwt_customizer_put(
    token_type: JwtTokenType,
    response: Response,
    payload: dict[str, Any] = Body(...),  # noqa: B008
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> dict[str, Any]:
    key = key_for_token_type(token_type)
    with _validation_errors():
        value = validate_jwt_customizer(key, payload)

    existing = get_rows_by_keys(ctx.db_path, tenant_id=ctx.tenant_id, keys=[key])
    row = upsert_jwt_customizer(ctx.db_path, tenant_id=ctx.tenant_id, key=key, value=value)

    with _cloud_errors("deploy", tenant_id=ctx.tenant_id, key=key):
        await deploy_jwt_customizer_script(
            ctx.cloud_connection,
            ctx.db_path,
            tenant_id=ctx.tenant_id,
            key=key,
            value=row.value,
        )

    response.status_code = 200 if existing.row_count > 0 else 201
    return row.value


@router.patch("/{token_type}")
async def jwt_customizer_patch(
    token_type: JwtTokenType,
    payload: dict[str, Any] = Body(...),  # noqa: B008
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> dict[str, Any]:
    key = key_for_token_type(token_type)

    with _validation_errors():
        row = update_jwt_customizer(ctx.db_path, tenant_id=ctx.tenant_id, key=key, patch=payload)

    with _cloud_errors("deploy", tenant_id=ctx.tenant_id, key=key):
        await deploy_jwt_customizer_script(
            ctx.cloud_connection,
            ctx.db_path,
            tenant_id=ctx.tenant_id,
            key=key,
            value=row.value,
        )

    return row.value


@router.delete("/{token_type}", status_code=204)
async def jwt_customizer_delete(
    token_type: JwtTokenType,
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> Response:
    key = key_for_token_type(token_type)

    with _cloud_errors("undeploy", tenant_id=ctx.tenant_id, key=key):
        await undeploy_jwt_customizer_script(
            ctx.cloud_connection, ctx.db_path, tenant_id=ctx.tenant_id, key=key
        )

    delete_jwt_customizer(ctx.db_path, tenant_id=ctx.tenant_id, key=key)
    return Response(status_code=204)


@router.post("/test")
async def jwt_customizer_test(
    payload: JwtCustomizerTestRequest,
    ctx: TenantContext = Depends(get_tenant_context),  # noqa: B008
) -> Any:
    cloud = ctx.cloud_connection
    if not cloud.enabled:
        raise WardenError(
            status_code=400,
            code="cloud.not_configured",
            message="Testing JWT customizers requires a cloud connection",
        )

    key = key_for_token_type(payload.token_type)
    body = payload.model_dump(mode="json", by_alias=True, exclude_none=True)

    with _cloud_errors("deploy", tenant_id=ctx.tenant_id, key=key):
        await deploy_jwt_customizer_script(
            cloud,
            ctx.db_path,
            tenant_id=ctx.tenant_id,
            key=key,
            value=body,
            is_test=True,
        )

    with _cloud_errors("test run", tenant_id=ctx.tenant_id, key=key):
        try:
            result = await run_jwt_customizer_test(cloud, tenant_id=ctx.tenant_id, payload=body)
        except CloudResponseError as e:
            # 4xx means the script itself was rejected or failed; surface its message.
            if 400 <= e.status_code < 500:
                raise WardenError(
                    status_code=422,
                    code="jwt_customizer.general",
                    message=e.message,
                    details=e.body,
                ) from e
            raise

    logger.info("Ran JWT customizer test for tenant %s key %s", ctx.tenant_id, key)
    return result
