"""Application wiring for the booking service."""
from __future__ import annotations

import logging
from functools import lru_cache

from ..booking import TransitionRecord
from ..config import load_booking_config
from ..lifecycle import BookingService, TransitionLog
from ..lifecycle.repository import PostgresBookingRepository


logger = logging.getLogger("booking")


class LoggingTransitionLog(TransitionLog):
    """Transition log that mirrors every persisted record to the application logger."""

    def __init__(self, inner: TransitionLog) -> None:
        self._inner = inner

    def append(self, record: TransitionRecord) -> TransitionRecord:
        stored = self._inner.append(record)
        logger.info(
            "Booking transition request=%s %s/%s -> %s/%s event=%s ledger=%s",
            record.request_id,
            record.previous_status.value if record.previous_status else None,
            record.previous_payment_status.value if record.previous_payment_status else None,
            record.new_status.value,
            record.new_payment_status.value,
            record.event.value if record.event else "create",
            record.ledger_effect.value,
        )
        return stored

    def list_for_request(self, request_id: str):
        return self._inner.list_for_request(request_id)


@lru_cache(maxsize=1)
def get_booking_service() -> BookingService:
    config = load_booking_config()
    repository = PostgresBookingRepository()
    service = BookingService(
        subscriptions=repository,
        bookings=repository,
        transition_log=LoggingTransitionLog(repository),
        config=config,
    )
    return service


__all__ = ["get_booking_service", "LoggingTransitionLog"]
