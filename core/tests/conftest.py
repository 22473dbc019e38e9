"""Shared fixtures: an in-process stand-in for the cloud script-execution service."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any, cast

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from warden_core.app import create_app
from warden_core.home import ensure_warden_layout

CLOUD_ENDPOINT = "https://cloud.test"
CLOUD_TOKEN_PATH = "/oidc/token"
WORKER_PATH = "/api/services/custom-jwt/worker"
RUN_PATH = "/api/services/custom-jwt"


class FakeCloud:
    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.worker_status = 200
        self.run_response = httpx.Response(200, json={"success": True})
        self.token_response: httpx.Response | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == CLOUD_TOKEN_PATH:
            if self.token_response is not None:
                return self.token_response
            return httpx.Response(200, json={"access_token": "cloud-token", "expires_in": 3600})

        if path == WORKER_PATH:
            if self.worker_status >= 400:
                return httpx.Response(self.worker_status, json={"message": "worker exploded"})
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(self.worker_status, json={})

        if path == RUN_PATH and request.method == "POST":
            return self.run_response

        return httpx.Response(404, json={"message": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def service_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != CLOUD_TOKEN_PATH]


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


def write_core_config(home: Path, payload: dict[str, Any]) -> None:
    paths = ensure_warden_layout(home)
    paths.core_config_path.write_text(json.dumps(payload), encoding="utf-8")


def cloud_config_payload() -> dict[str, Any]:
    return {
        "cloud": {
            "enabled": True,
            "endpoint": CLOUD_ENDPOINT,
            "token_endpoint": f"{CLOUD_ENDPOINT}{CLOUD_TOKEN_PATH}",
            "app_id": "warden-app",
            "app_secret": "warden-secret",
            "resource": f"{CLOUD_ENDPOINT}/api",
        }
    }


def authed(client: TestClient) -> TestClient:
    app = cast(FastAPI, client.app)
    token = app.state.warden_config.auth.admin_token
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def client(tmp_path: Path, monkeypatch, cloud: FakeCloud) -> Iterator[TestClient]:
    monkeypatch.setenv("WARDEN_HOME", str(tmp_path))
    write_core_config(tmp_path, cloud_config_payload())

    with TestClient(create_app(cloud_transport=cloud.transport)) as c:
        yield authed(c)
