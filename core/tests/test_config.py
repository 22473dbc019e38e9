from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from warden_core.config import (
    CoreConfig,
    ensure_admin_token,
    load_core_config,
    resolve_configured_paths,
)
from warden_core.home import ensure_warden_layout


def test_load_core_config_defaults_when_missing(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)
    cfg = load_core_config(paths)
    assert isinstance(cfg, CoreConfig)
    assert cfg.network.bind_host == "127.0.0.1"
    assert cfg.tenancy.default_tenant_id == "default"
    assert cfg.cloud.enabled is False


def test_load_core_config_validation_error(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)

    paths.core_config_path.write_text(
        json.dumps({"network": {"core_port": "not-an-int"}}),
        encoding="utf-8",
    )

    with pytest.raises(ValidationError):
        load_core_config(paths)


def test_default_tenant_must_be_a_slug(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)
    paths.core_config_path.write_text(
        json.dumps({"tenancy": {"default_tenant_id": "Has Spaces"}}),
        encoding="utf-8",
    )

    with pytest.raises(ValidationError):
        load_core_config(paths)


def test_ensure_admin_token_persists_once(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)

    cfg = ensure_admin_token(paths, load_core_config(paths))
    token = cfg.auth.admin_token
    assert token

    reloaded = load_core_config(paths)
    assert reloaded.auth.admin_token == token
    assert ensure_admin_token(paths, reloaded).auth.admin_token == token


def test_resolve_configured_paths_creates_overrides(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)

    cfg = CoreConfig.model_validate(
        {
            "paths": {
                "db_dir": "custom_db",
                "logs_dir": "custom_logs",
            }
        }
    )

    resolved = resolve_configured_paths(paths, cfg)
    assert resolved.db_dir.is_dir()
    assert resolved.logs_dir.is_dir()

    # Overrides are resolved relative to WARDEN_HOME by default.
    assert resolved.db_dir == (tmp_path / "custom_db").resolve()
    assert resolved.logs_dir == (tmp_path / "custom_logs").resolve()

    # Non-configurable dirs remain under home.
    assert resolved.config_dir == (tmp_path / "config").resolve()
