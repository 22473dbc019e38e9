from __future__ import annotations

import secrets
from typing import Final

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

AUTHORIZATION_HEADER: Final[str] = "Authorization"
TOKEN_HEADER: Final[str] = "X-Warden-Token"
TOKEN_COOKIE: Final[str] = "warden_token"

_EXEMPT_PATHS: Final[frozenset[str]] = frozenset({"/healthz", "/openapi.json"})
_EXEMPT_PREFIXES: Final[tuple[str, ...]] = ("/docs", "/redoc")

_bearer_scheme = HTTPBearer(auto_error=False)
_token_header_scheme = APIKeyHeader(name=TOKEN_HEADER, auto_error=False)


def is_exempt_path(path: str) -> bool:
    return path in _EXEMPT_PATHS or path.startswith(_EXEMPT_PREFIXES)


def expected_admin_token(request: Request) -> str | None:
    config = getattr(request.app.state, "warden_config", None)
    return getattr(getattr(config, "auth", None), "admin_token", None)


def extract_token_from_request(request: Request) -> str | None:
    header_token = request.headers.get(TOKEN_HEADER)
    if header_token:
        return header_token

    cookie_token = request.cookies.get(TOKEN_COOKIE)
    if cookie_token:
        return cookie_token

    auth = request.headers.get(AUTHORIZATION_HEADER)
    if not auth:
        return None

    prefix = "Bearer "
    if auth.startswith(prefix):
        return auth[len(prefix) :].strip() or None
    return None


def tokens_match(provided: str, expected: str) -> bool:
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_admin_token(
    request: Request,
    bearer: HTTPAuthorizationCredentials | None = Security(_bearer_scheme),  # noqa: B008
    header_token: str | None = Security(_token_header_scheme),  # noqa: B008
) -> None:
    """Require the per-install admin token for protected endpoints.

    Accepts either:
    - Authorization: Bearer <token>
    - X-Warden-Token: <token>
    - the warden_token cookie
    """

    expected_token = expected_admin_token(request)

    # Fail closed; startup generates a token when none is configured.
    if not expected_token:
        raise HTTPException(status_code=500, detail="Server auth token not initialized")

    provided = header_token
    if not provided and bearer is not None:
        provided = bearer.credentials

    if not provided:
        provided = request.cookies.get(TOKEN_COOKIE)

    if not provided:
        raise HTTPException(status_code=401, detail="Missing token")

    if not tokens_match(provided, expected_token):
        raise HTTPException(status_code=401, detail="Invalid token")
