from __future__ import annotations

from warden_core.jwt_customizer.models import (
    AccessTokenJwtCustomizer,
    ClientCredentialsJwtCustomizer,
    JwtCustomizerTestRequest,
    JwtTokenKey,
    JwtTokenType,
    key_for_token_type,
    validate_jwt_customizer,
)

__all__ = [
    "AccessTokenJwtCustomizer",
    "ClientCredentialsJwtCustomizer",
    "JwtCustomizerTestRequest",
    "JwtTokenKey",
    "JwtTokenType",
    "key_for_token_type",
    "validate_jwt_customizer",
]
