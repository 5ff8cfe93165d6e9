"""Error taxonomy shared by services and the HTTP layer.

Every error carries a stable ``kind`` and an HTTP status. Services raise these
directly; ``placer.main`` renders them as JSON.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that reach the client."""

    kind = "InternalError"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Validation failed"


class Unauthorized(AppError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "Not authenticated"


class PermissionDenied(AppError):
    kind = "PermissionDenied"
    status_code = 403
    default_message = "Permission denied"


class NotFound(AppError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    kind = "Conflict"
    status_code = 400
    default_message = "Resource already exists"


class InvalidOperation(AppError):
    kind = "InvalidOperation"
    status_code = 400
    default_message = "Operation not allowed"


class InternalError(AppError):
    pass


def field_errors_from_pydantic(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    out = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        message = err.get("msg", "Invalid value")
        # pydantic prefixes custom ValueError messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        out.append({"field": ".".join(loc) or None, "message": message})
    return out
