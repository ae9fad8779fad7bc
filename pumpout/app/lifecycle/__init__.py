"""Request lifecycle state machine and the booking flow built on it."""

from .machine import (
    PAYMENT_TRANSITIONS,
    STATUS_TRANSITIONS,
    Transition,
    allowed_events,
    open_request,
    requires_payment_to_complete,
    transition,
)
from .service import (
    BookingService,
    BookingStore,
    KeyedLocks,
    SubscriptionStore,
    TransitionLog,
)

__all__ = [
    "BookingService",
    "BookingStore",
    "PAYMENT_TRANSITIONS",
    "STATUS_TRANSITIONS",
    "KeyedLocks",
    "SubscriptionStore",
    "Transition",
    "TransitionLog",
    "allowed_events",
    "open_request",
    "requires_payment_to_complete",
    "transition",
]
