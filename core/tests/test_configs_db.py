from __future__ import annotations

from pathlib import Path

import pytest

from warden_core.db.configs import delete_config, get_rows_by_keys, list_configs, upsert_config
from warden_core.db.migrate import apply_migrations
from warden_core.db.tenants import create_tenant, ensure_tenant, get_tenant
from warden_core.errors import WardenError
from warden_core.jwt_customizer.library import (
    delete_jwt_customizer,
    get_jwt_customizer,
    get_jwt_customizers,
    update_jwt_customizer,
)
from warden_core.jwt_customizer.models import JwtTokenKey


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "core.sqlite3"
    apply_migrations(path)
    ensure_tenant(path, tenant_id="default")
    ensure_tenant(path, tenant_id="acme")
    return path


def test_upsert_replaces_and_keeps_created_at(db_path: Path) -> None:
    first = upsert_config(db_path, tenant_id="default", key="jwt.accessToken", value={"script": "a"})
    second = upsert_config(
        db_path, tenant_id="default", key="jwt.accessToken", value={"script": "b"}
    )

    assert second.value == {"script": "b"}
    assert second.created_at == first.created_at

    rows = get_rows_by_keys(db_path, tenant_id="default", keys=["jwt.accessToken"])
    assert rows.row_count == 1


def test_rows_are_scoped_by_tenant_and_prefix(db_path: Path) -> None:
    upsert_config(db_path, tenant_id="default", key="jwt.accessToken", value={"script": "a"})
    upsert_config(db_path, tenant_id="acme", key="jwt.clientCredentials", value={"script": "c"})
    upsert_config(db_path, tenant_id="acme", key="signIn.terms", value={"url": "https://x"})

    assert [r.key for r in list_configs(db_path, tenant_id="acme")] == [
        "jwt.clientCredentials",
        "signIn.terms",
    ]
    assert [r.key for r in list_configs(db_path, tenant_id="acme", key_prefix="jwt.")] == [
        "jwt.clientCredentials"
    ]
    assert get_rows_by_keys(db_path, tenant_id="default", keys=[]).row_count == 0

    assert delete_config(db_path, tenant_id="default", key="jwt.clientCredentials") == 0
    assert delete_config(db_path, tenant_id="acme", key="jwt.clientCredentials") == 1


def test_library_reads_and_merges(db_path: Path) -> None:
    upsert_config(
        db_path,
        tenant_id="default",
        key=JwtTokenKey.CLIENT_CREDENTIALS,
        value={"script": "x", "environmentVariables": {"A": "1"}},
    )

    assert list(get_jwt_customizers(db_path, tenant_id="default")) == [
        JwtTokenKey.CLIENT_CREDENTIALS
    ]

    row = update_jwt_customizer(
        db_path,
        tenant_id="default",
        key=JwtTokenKey.CLIENT_CREDENTIALS,
        patch={"script": "y"},
    )
    assert row.value == {"script": "y", "environmentVariables": {"A": "1"}}

    with pytest.raises(WardenError) as excinfo:
        get_jwt_customizer(db_path, tenant_id="acme", key=JwtTokenKey.CLIENT_CREDENTIALS)
    assert excinfo.value.status_code == 404

    delete_jwt_customizer(db_path, tenant_id="default", key=JwtTokenKey.CLIENT_CREDENTIALS)
    with pytest.raises(WardenError):
        delete_jwt_customizer(db_path, tenant_id="default", key=JwtTokenKey.CLIENT_CREDENTIALS)


def test_customizer_listing_skips_other_config_keys(db_path: Path) -> None:
    upsert_config(db_path, tenant_id="default", key="signIn.terms", value={"script": "no"})
    upsert_config(db_path, tenant_id="default", key="jwt.idToken", value={"script": "no"})
    upsert_config(db_path, tenant_id="default", key="jwt.clientCredentials", value={"script": "c"})
    upsert_config(db_path, tenant_id="default", key="jwt.accessToken", value={"script": "a"})
    upsert_config(db_path, tenant_id="acme", key="jwt.accessToken", value={"script": "other"})

    customizers = get_jwt_customizers(db_path, tenant_id="default")
    assert list(customizers) == [JwtTokenKey.ACCESS_TOKEN, JwtTokenKey.CLIENT_CREDENTIALS]
    assert customizers[JwtTokenKey.ACCESS_TOKEN] == {"script": "a"}


def test_tenants_create_is_idempotent_via_ensure(db_path: Path) -> None:
    assert create_tenant(db_path, tenant_id="acme") is None
    assert ensure_tenant(db_path, tenant_id="acme").tenant_id == "acme"
    assert get_tenant(db_path, tenant_id="missing") is None
