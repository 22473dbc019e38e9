from __future__ import annotations

import json
import secrets
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from warden_core.home import WardenPaths


class NetworkConfig(BaseModel):
    bind_host: str = Field(default="127.0.0.1")
    core_port: int = Field(default=8790, ge=1, le=65535)


class PathOverrides(BaseModel):
    db_dir: str | None = None
    logs_dir: str | None = None


class AuthConfig(BaseModel):
    admin_token: str | None = Field(default=None)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    max_size_mb: int = Field(
        default=10, ge=1, description="Max size of a log file in MB before rolling."
    )
    backup_count: int = Field(default=5, ge=1, description="Number of log archives to keep.")


class TenancyConfig(BaseModel):
    default_tenant_id: str = Field(
        default="default",
        pattern=r"^[a-z0-9][a-z0-9-]{0,63}$",
        description="Tenant used when a request does not name one; seeded at startup.",
    )


class CloudConfig(BaseModel):
    """Connection to the external script-execution service.

    When disabled, deploy/undeploy of JWT customizer scripts are skipped and the
    test endpoint is unavailable.
    """

    enabled: bool = Field(default=False)
    endpoint: str | None = Field(
        default=None,
        description="Base URL of the cloud service, e.g. https://cloud.example.com",
    )
    token_endpoint: str | None = Field(
        default=None,
        description="OAuth2 token endpoint used for the client-credentials grant",
    )
    app_id: str | None = Field(default=None)
    app_secret: str | None = Field(default=None)
    resource: str | None = Field(
        default=None, description="Resource indicator requested with the access token"
    )
    timeout_s: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _require_endpoints_when_enabled(self) -> CloudConfig:
        if not self.enabled:
            return self
        missing = [
            name
            for name in ("endpoint", "token_endpoint", "app_id", "app_secret")
            if not (getattr(self, name) or "").strip()
        ]
        if missing:
            raise ValueError(f"cloud is enabled but missing: {', '.join(missing)}")
        return self


class CoreConfig(BaseModel):
    version: str = Field(default="1")
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    paths: PathOverrides = Field(default_factory=PathOverrides)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tenancy: TenancyConfig = Field(default_factory=TenancyConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)


def _read_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_core_config(paths: WardenPaths) -> CoreConfig:
    """Load config from ${WARDEN_HOME}/config/core.json.

    - If missing: returns defaults.
    - Validation is performed by Pydantic.
    """

    config_path = paths.core_config_path
    if not config_path.exists():
        return CoreConfig()

    raw = _read_json(config_path)
    return CoreConfig.model_validate(raw)


def write_core_config(paths: WardenPaths, config: CoreConfig) -> None:
    """Persist config to ${WARDEN_HOME}/config/core.json."""

    payload = config.model_dump(mode="json", exclude_none=True)
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.core_config_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def ensure_admin_token(paths: WardenPaths, config: CoreConfig) -> CoreConfig:
    """Ensure a per-install admin token exists and is stored in config.

    If missing, generate a new token and persist it to core.json.
    """

    raw = (config.auth.admin_token or "").strip()
    if raw:
        return config

    token = secrets.token_urlsafe(32)
    updated_auth = config.auth.model_copy(update={"admin_token": token})
    updated = config.model_copy(update={"auth": updated_auth})
    write_core_config(paths, updated)
    return updated


def resolve_configured_paths(paths: WardenPaths, config: CoreConfig) -> WardenPaths:
    """Apply user-configurable path overrides from config.

    config/ and run/ are not configurable.
    """

    def _resolve_dir(raw: str | None, default: Path) -> Path:
        if raw is None or not str(raw).strip():
            return default
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = (paths.home / candidate).resolve()
        else:
            candidate = candidate.resolve()
        return candidate

    db_dir = _resolve_dir(config.paths.db_dir, paths.db_dir)
    logs_dir = _resolve_dir(config.paths.logs_dir, paths.logs_dir)

    for p in (db_dir, logs_dir):
        p.mkdir(parents=True, exist_ok=True)

    return WardenPaths(
        home=paths.home,
        db_dir=db_dir,
        logs_dir=logs_dir,
        config_dir=paths.config_dir,
        run_dir=paths.run_dir,
    )
