"""Domain models for pump-out booking requests and their audit trail."""
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..scheduling.weeks import is_monday


class RequestStatus(str, Enum):
    """Service progress of a single booking."""

    REQUESTED = "Requested"
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    WAITLISTED = "Waitlisted"

    @property
    def is_terminal(self) -> bool:
        return self in {RequestStatus.COMPLETED, RequestStatus.CANCELED}

    @property
    def occupies_capacity(self) -> bool:
        """Whether the request holds one of the week's service slots."""

        return self in {RequestStatus.REQUESTED, RequestStatus.SCHEDULED}


class PaymentStatus(str, Enum):
    """Payment progress, independent of service progress."""

    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class LifecycleEvent(str, Enum):
    """Events that move a booking along one of its two axes."""

    SCHEDULE = "schedule"
    WAITLIST = "waitlist"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_PAID = "mark_paid"
    MARK_FAILED = "mark_failed"
    RETRY_PAYMENT = "retry_payment"
    REFUND = "refund"


class LedgerEffect(str, Enum):
    """How a transition affects the subscriber's quota."""

    DEBIT = "debit"
    CREDIT = "credit"
    NONE = "none"


class ActorRole(str, Enum):
    """Who is applying a lifecycle event."""

    MEMBER = "member"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class BookingRequest(BaseModel):
    """One subscriber's request for service in a given week.

    Requests are never deleted; cancellation is a status change.
    """

    id: str
    subscriber_id: str
    week_start_date: date
    status: RequestStatus = RequestStatus.REQUESTED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    is_additional_unit: bool = False
    owner_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @field_validator("week_start_date")
    @classmethod
    def _require_monday(cls, value: date) -> date:
        if not is_monday(value):
            raise ValueError("week_start_date must be a Monday")
        return value

    @property
    def counts_against_quota(self) -> bool:
        return self.status != RequestStatus.CANCELED


class TransitionRecord(BaseModel):
    """Append-only audit entry written for every lifecycle move."""

    request_id: str
    timestamp: datetime
    previous_status: Optional[RequestStatus] = None
    new_status: RequestStatus
    previous_payment_status: Optional[PaymentStatus] = None
    new_payment_status: PaymentStatus
    event: Optional[LifecycleEvent] = None
    ledger_effect: LedgerEffect = LedgerEffect.NONE

    model_config = ConfigDict(frozen=True)

    @property
    def is_creation(self) -> bool:
        return self.previous_status is None
