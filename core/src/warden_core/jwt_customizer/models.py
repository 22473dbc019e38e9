from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class JwtTokenKey(StrEnum):
    """Storage keys of JWT customizer rows in the config table."""

    ACCESS_TOKEN = "jwt.accessToken"
    CLIENT_CREDENTIALS = "jwt.clientCredentials"


class JwtTokenType(StrEnum):
    """Token types as they appear in URLs and test requests."""

    ACCESS_TOKEN = "access-token"
    CLIENT_CREDENTIALS = "client-credentials"


TOKEN_TYPE_TO_KEY: dict[JwtTokenType, JwtTokenKey] = {
    JwtTokenType.ACCESS_TOKEN: JwtTokenKey.ACCESS_TOKEN,
    JwtTokenType.CLIENT_CREDENTIALS: JwtTokenKey.CLIENT_CREDENTIALS,
}

# Listing order for GET /configs/jwt-customizer.
JWT_TOKEN_KEYS: tuple[JwtTokenKey, ...] = (
    JwtTokenKey.ACCESS_TOKEN,
    JwtTokenKey.CLIENT_CREDENTIALS,
)


def key_for_token_type(token_type: JwtTokenType) -> JwtTokenKey:
    return TOKEN_TYPE_TO_KEY[token_type]


class _CamelModel(BaseModel):
    # Wire form only: snake_case field names are rejected as extra keys.
    model_config = ConfigDict(alias_generator=to_camel, extra="forbid")


class JwtCustomizerBase(_CamelModel):
    script: str = Field(min_length=1)
    environment_variables: dict[str, str] | None = None
    token_sample: dict[str, Any] | None = None


class AccessTokenJwtCustomizer(JwtCustomizerBase):
    context_sample: dict[str, Any] | None = None


class ClientCredentialsJwtCustomizer(JwtCustomizerBase):
    pass


JWT_CUSTOMIZER_MODELS: dict[JwtTokenKey, type[JwtCustomizerBase]] = {
    JwtTokenKey.ACCESS_TOKEN: AccessTokenJwtCustomizer,
    JwtTokenKey.CLIENT_CREDENTIALS: ClientCredentialsJwtCustomizer,
}


def validate_jwt_customizer(key: JwtTokenKey, raw: Any) -> dict[str, Any]:
    """Validate a raw document for `key` and return its wire (camelCase) form.

    Raises pydantic.ValidationError on invalid input.
    """

    model = JWT_CUSTOMIZER_MODELS[key].model_validate(raw)
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class JwtCustomizerEntry(BaseModel):
    key: JwtTokenKey
    value: dict[str, Any]


class JwtCustomizerTestRequest(_CamelModel):
    token_type: JwtTokenType
    token: dict[str, Any] = Field(default_factory=dict)
    script: str = Field(min_length=1)
    environment_variables: dict[str, str] | None = None
    context: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _context_only_for_access_token(self) -> JwtCustomizerTestRequest:
        if self.context is not None and self.token_type != JwtTokenType.ACCESS_TOKEN:
            raise ValueError("context is only supported for access-token customizers")
        return self
