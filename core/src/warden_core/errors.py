from __future__ import annotations

from typing import Any


class WardenError(Exception):
    """An error with a stable machine-readable code, rendered by the app's error handler."""

    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, code={self.code!r})"


def config_not_found(key: str) -> WardenError:
    return WardenError(
        status_code=404,
        code="config.not_found",
        message=f"Config not found: {key}",
        details={"key": key},
    )


def tenant_not_found(tenant_id: str) -> WardenError:
    return WardenError(
        status_code=404,
        code="tenant.not_found",
        message=f"Tenant not found: {tenant_id}",
        details={"tenant_id": tenant_id},
    )
