"""JWT customizer persistence and deployment.

Stored customizers live in the `configs` table. Whenever the set changes, the full
set of scripts for the tenant is pushed to the cloud worker so that the deployed
worker mirrors the stored rows.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from warden_core.cloud import CloudConnection
from warden_core.db.configs import (
    ConfigRow,
    delete_config,
    get_rows_by_keys,
    list_configs,
    upsert_config,
)
from warden_core.errors import config_not_found
from warden_core.jwt_customizer.models import (
    JWT_TOKEN_KEYS,
    JwtTokenKey,
    validate_jwt_customizer,
)

logger = logging.getLogger(__name__)

CUSTOM_JWT_WORKER_PATH = "/api/services/custom-jwt/worker"
CUSTOM_JWT_RUN_PATH = "/api/services/custom-jwt"
JWT_KEY_PREFIX = "jwt."


def get_jwt_customizers(db_path, *, tenant_id: str) -> dict[JwtTokenKey, dict[str, Any]]:
    rows = list_configs(db_path, tenant_id=tenant_id, key_prefix=JWT_KEY_PREFIX)
    by_key = {row.key: row.value for row in rows}
    # Unknown jwt.* keys are ignored; order follows JWT_TOKEN_KEYS.
    return {key: by_key[key] for key in JWT_TOKEN_KEYS if key in by_key}


def get_jwt_customizer(db_path, *, tenant_id: str, key: JwtTokenKey) -> dict[str, Any]:
    result = get_rows_by_keys(db_path, tenant_id=tenant_id, keys=[key])
    if result.row_count == 0:
        raise config_not_found(key)
    return result.rows[0].value


def upsert_jwt_customizer(
    db_path, *, tenant_id: str, key: JwtTokenKey, value: dict[str, Any]
) -> ConfigRow:
    return upsert_config(db_path, tenant_id=tenant_id, key=key, value=value)


def update_jwt_customizer(
    db_path, *, tenant_id: str, key: JwtTokenKey, patch: Mapping[str, Any]
) -> ConfigRow:
    """Shallow-merge `patch` over the stored value and store the validated result."""

    current = get_jwt_customizer(db_path, tenant_id=tenant_id, key=key)
    merged = validate_jwt_customizer(key, {**current, **patch})
    return upsert_config(db_path, tenant_id=tenant_id, key=key, value=merged)


def delete_jwt_customizer(db_path, *, tenant_id: str, key: JwtTokenKey) -> None:
    if delete_config(db_path, tenant_id=tenant_id, key=key) < 1:
        raise config_not_found(key)


def get_jwt_customizer_scripts(
    customizers: Mapping[JwtTokenKey, Mapping[str, Any]],
) -> dict[str, dict[str, str]]:
    return {str(key): {"production": value["script"]} for key, value in customizers.items()}


async def deploy_jwt_customizer_script(
    cloud: CloudConnection,
    db_path,
    *,
    tenant_id: str,
    key: JwtTokenKey,
    value: Mapping[str, Any],
    is_test: bool = False,
) -> None:
    """Push the tenant's scripts, with `value` applied under `key`, to the cloud worker."""

    if not cloud.enabled:
        return

    use_case = "test" if is_test else "production"
    scripts = get_jwt_customizer_scripts(get_jwt_customizers(db_path, tenant_id=tenant_id))
    scripts.setdefault(str(key), {})[use_case] = value["script"]

    client = await cloud.get_client(tenant_id)
    await client.put(CUSTOM_JWT_WORKER_PATH, body=scripts)
    logger.info("Deployed JWT customizer %s (%s) for tenant %s", key, use_case, tenant_id)


async def undeploy_jwt_customizer_script(
    cloud: CloudConnection,
    db_path,
    *,
    tenant_id: str,
    key: JwtTokenKey,
) -> None:
    """Remove `key` from the cloud worker; must run before the row is deleted."""

    if not cloud.enabled:
        return

    customizers = get_jwt_customizers(db_path, tenant_id=tenant_id)
    if key not in customizers:
        return

    client = await cloud.get_client(tenant_id)

    if len(customizers) == 1:
        await client.delete(CUSTOM_JWT_WORKER_PATH)
        logger.info("Removed JWT customizer worker for tenant %s", tenant_id)
        return

    remaining = {k: v for k, v in customizers.items() if k != key}
    await client.put(CUSTOM_JWT_WORKER_PATH, body=get_jwt_customizer_scripts(remaining))
    logger.info("Undeployed JWT customizer %s for tenant %s", key, tenant_id)


async def run_jwt_customizer_test(
    cloud: CloudConnection, *, tenant_id: str, payload: Mapping[str, Any]
) -> Any:
    client = await cloud.get_client(tenant_id)
    return await client.post(CUSTOM_JWT_RUN_PATH, body=dict(payload))
