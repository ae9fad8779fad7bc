"""Booking request records and lifecycle vocabulary."""

from .models import (
    ActorRole,
    BookingRequest,
    LedgerEffect,
    LifecycleEvent,
    PaymentStatus,
    RequestStatus,
    TransitionRecord,
)

__all__ = [
    "ActorRole",
    "BookingRequest",
    "LedgerEffect",
    "LifecycleEvent",
    "PaymentStatus",
    "RequestStatus",
    "TransitionRecord",
]
