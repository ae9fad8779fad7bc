"""Exceptions raised by the booking engine and its callers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status


@dataclass
class BookingEngineError(Exception):
    """Base error carrying a stable code and a JSON-friendly payload."""

    code: str
    message: str
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    def to_http_exception(self) -> HTTPException:
        """Convert the domain error into a FastAPI HTTPException."""

        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


class InvalidArgument(BookingEngineError):
    """Malformed input. Always a caller bug and never retried."""

    def __init__(self, message: str, *, detail: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_argument",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class InvalidTransition(BookingEngineError):
    """A lifecycle move outside the allowed adjacency."""

    def __init__(self, message: str, *, detail: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(
            code="invalid_transition",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class BookingRejected(BookingEngineError):
    """The booking flow refused to create a request."""

    def __init__(self, code: str, message: str, *, detail: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class ActionForbidden(BookingEngineError):
    """The acting user may not apply the requested lifecycle event."""

    def __init__(self, message: str, *, detail: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(
            code="member_cancel_only",
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


__all__ = [
    "ActionForbidden",
    "BookingEngineError",
    "BookingRejected",
    "InvalidArgument",
    "InvalidTransition",
]
