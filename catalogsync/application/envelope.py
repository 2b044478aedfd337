"""Response envelopes returned to API callers.

Callers always receive either ``{"success": true, "data": ...}`` or
``{"success": false, "message": ..., "error": ...}``; exceptions never cross
this boundary.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failed request, for mapping onto transport status codes."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INVALID_REQUEST = "invalid_request"
    UNAVAILABLE = "unavailable"


class Envelope(BaseModel, Generic[T]):
    """Success or failure wrapper around a query result.

    Attributes:
        success: Whether the request succeeded.
        data: Result payload, set on success.
        message: Human readable reason, set on failure.
        error: Failure category, set on failure.
    """

    success: bool
    data: T | None = None
    message: str | None = None
    error: ErrorKind | None = None

    @classmethod
    def ok(cls, data: T) -> "Envelope[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Envelope[T]":
        return cls(success=False, error=error, message=message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise with wire field names, omitting unset members."""
        if self.success:
            return {"success": True, "data": _dump(self.data)}
        return {
            "success": False,
            "message": self.message,
            "error": self.error.value if self.error else None,
        }


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value
