"""Client for the external script-execution service ("cloud connection").

Requests are authenticated with an OAuth 2.0 access token obtained through the
client-credentials grant. The token is cached per connection until shortly before
it expires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from warden_core.config import CloudConfig

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Warden-Tenant-Id"
TOKEN_EXPIRY_LEEWAY_S = 60.0


class CloudConnectionError(Exception):
    """The cloud service could not be reached."""


class CloudResponseError(Exception):
    """The cloud service answered with a non-2xx status."""

    def __init__(self, *, status_code: int, message: str, body: Any | None = None) -> None:
        super().__init__(f"Cloud responded {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.body = body


@dataclass
class _CachedToken:
    access_token: str
    expires_at: float


def _error_message(response: httpx.Response) -> tuple[str, Any | None]:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason_phrase or "Cloud request failed"), None

    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"], body
    return response.reason_phrase or "Cloud request failed", body


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _parse_token_response(response: httpx.Response) -> tuple[str, float]:
    body = _parse_body(response)
    if not isinstance(body, dict):
        raise CloudResponseError(
            status_code=response.status_code, message="Invalid token response", body=body
        )

    access_token = body.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise CloudResponseError(
            status_code=response.status_code, message="Invalid token response", body=body
        )

    try:
        expires_in = float(body.get("expires_in", 3600))
    except (TypeError, ValueError) as e:
        raise CloudResponseError(
            status_code=response.status_code, message="Invalid token response", body=body
        ) from e
    return access_token, expires_in


class CloudClient:
    """Thin JSON client bound to one tenant and one access token."""

    def __init__(
        self,
        *,
        base_url: str,
        access_token: str,
        tenant_id: str,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            TENANT_HEADER: tenant_id,
        }
        self._timeout_s = timeout_s
        self._transport = transport

    async def _request(self, method: str, path: str, *, body: Any | None = None) -> Any:
        kwargs: dict[str, Any] = {"headers": self._headers}
        if body is not None:
            kwargs["json"] = body

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise CloudConnectionError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            message, parsed = _error_message(response)
            raise CloudResponseError(
                status_code=response.status_code, message=message, body=parsed
            )

        return _parse_body(response)

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def post(self, path: str, *, body: Any | None = None) -> Any:
        return await self._request("POST", path, body=body)

    async def put(self, path: str, *, body: Any | None = None) -> Any:
        return await self._request("PUT", path, body=body)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)


class CloudConnection:
    def __init__(
        self,
        config: CloudConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._token: _CachedToken | None = None
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    async def get_access_token(self) -> str:
        async with self._lock:
            now = time.monotonic()
            if self._token is not None and self._token.expires_at > now:
                return self._token.access_token

            cfg = self._config
            data = {"grant_type": "client_credentials"}
            if cfg.resource:
                data["resource"] = cfg.resource

            try:
                async with httpx.AsyncClient(
                    timeout=cfg.timeout_s, transport=self._transport
                ) as client:
                    response = await client.post(
                        str(cfg.token_endpoint),
                        data=data,
                        auth=(str(cfg.app_id), str(cfg.app_secret)),
                    )
            except httpx.HTTPError as e:
                raise CloudConnectionError(f"Token request failed: {e}") from e

            if response.is_error:
                message, parsed = _error_message(response)
                raise CloudResponseError(
                    status_code=response.status_code, message=message, body=parsed
                )

            access_token, expires_in = _parse_token_response(response)
            self._token = _CachedToken(
                access_token=access_token,
                expires_at=now + max(expires_in - TOKEN_EXPIRY_LEEWAY_S, 0.0),
            )
            logger.info("Obtained cloud access token (expires in %ss)", int(expires_in))
            return access_token

    async def get_client(self, tenant_id: str) -> CloudClient:
        if not self.enabled:
            raise CloudConnectionError("Cloud connection is not enabled")

        token = await self.get_access_token()
        return CloudClient(
            base_url=str(self._config.endpoint),
            access_token=token,
            tenant_id=tenant_id,
            timeout_s=self._config.timeout_s,
            transport=self._transport,
        )
