"""State machine for booking status and payment status.

The two axes move independently::

    Requested  -> Scheduled | Canceled | Waitlisted
    Scheduled  -> Completed | Canceled
    Waitlisted -> Scheduled | Canceled

    Pending    -> Paid | Failed
    Paid       -> Refunded
    Failed     -> Pending

Completed, Canceled and Refunded are terminal. Creation in
``Requested``/``Pending`` is the only way in.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, Optional, Tuple, Union

from ..booking.models import (
    BookingRequest,
    LedgerEffect,
    LifecycleEvent,
    PaymentStatus,
    RequestStatus,
    TransitionRecord,
)
from ..exceptions import InvalidArgument, InvalidTransition
from ..plans.models import PlanType
from ..scheduling.weeks import as_day, is_monday

STATUS_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.REQUESTED: frozenset(
        {RequestStatus.SCHEDULED, RequestStatus.CANCELED, RequestStatus.WAITLISTED}
    ),
    RequestStatus.SCHEDULED: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELED}),
    RequestStatus.WAITLISTED: frozenset({RequestStatus.SCHEDULED, RequestStatus.CANCELED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.REFUNDED: frozenset(),
}

_EVENT_TARGETS: Dict[LifecycleEvent, Union[RequestStatus, PaymentStatus]] = {
    LifecycleEvent.SCHEDULE: RequestStatus.SCHEDULED,
    LifecycleEvent.WAITLIST: RequestStatus.WAITLISTED,
    LifecycleEvent.COMPLETE: RequestStatus.COMPLETED,
    LifecycleEvent.CANCEL: RequestStatus.CANCELED,
    LifecycleEvent.MARK_PAID: PaymentStatus.PAID,
    LifecycleEvent.MARK_FAILED: PaymentStatus.FAILED,
    LifecycleEvent.RETRY_PAYMENT: PaymentStatus.PENDING,
    LifecycleEvent.REFUND: PaymentStatus.REFUNDED,
}


@dataclass(frozen=True)
class Transition:
    """Updated request plus the audit record describing the move."""

    request: BookingRequest
    record: TransitionRecord

    @property
    def ledger_effect(self) -> LedgerEffect:
        return self.record.ledger_effect


def requires_payment_to_complete(plan_type: PlanType, request: BookingRequest) -> bool:
    """Pay-per-use services must be paid before completion.

    One-time plans and bulk units bought on top of the base quantity are
    pay-per-use. Monthly, seasonal and base bulk units are prepaid and may
    complete while payment is still being reconciled.
    """

    if plan_type == PlanType.ONE_TIME:
        return True
    return plan_type == PlanType.BULK and request.is_additional_unit


def open_request(
    *,
    request_id: str,
    subscriber_id: str,
    week_start_date: date,
    created_at: Optional[datetime] = None,
    is_additional_unit: bool = False,
    owner_notes: Optional[str] = None,
) -> Transition:
    """Create a request in ``Requested``/``Pending`` and its debit record."""

    week_start_date = as_day(week_start_date)
    if not is_monday(week_start_date):
        raise InvalidArgument(
            "week_start_date must be a Monday",
            detail={"week_start_date": week_start_date.isoformat()},
        )

    timestamp = created_at or datetime.now(timezone.utc)
    request = BookingRequest(
        id=request_id,
        subscriber_id=subscriber_id,
        week_start_date=week_start_date,
        status=RequestStatus.REQUESTED,
        payment_status=PaymentStatus.PENDING,
        is_additional_unit=is_additional_unit,
        owner_notes=owner_notes,
        created_at=timestamp,
        updated_at=timestamp,
    )
    record = TransitionRecord(
        request_id=request.id,
        timestamp=timestamp,
        previous_status=None,
        new_status=request.status,
        previous_payment_status=None,
        new_payment_status=request.payment_status,
        ledger_effect=LedgerEffect.DEBIT,
    )
    return Transition(request=request, record=record)


def allowed_events(request: BookingRequest) -> Tuple[LifecycleEvent, ...]:
    """Events that would currently be accepted, ignoring payment gating."""

    permitted = []
    for event, target in _EVENT_TARGETS.items():
        if isinstance(target, RequestStatus):
            if target in STATUS_TRANSITIONS[request.status]:
                permitted.append(event)
        elif target in PAYMENT_TRANSITIONS[request.payment_status]:
            permitted.append(event)
    return tuple(permitted)


def transition(
    request: BookingRequest,
    event: LifecycleEvent,
    *,
    plan_type: Optional[PlanType] = None,
    at: Optional[datetime] = None,
) -> Transition:
    """Apply ``event`` to ``request`` or raise :class:`InvalidTransition`.

    ``plan_type`` is required for ``COMPLETE`` so pay-per-use bookings can be
    held until paid.
    """

    try:
        event = LifecycleEvent(event)
    except ValueError as exc:
        raise InvalidArgument(
            f"Unknown lifecycle event: {event!r}",
            detail={"request_id": request.id},
        ) from exc
    target = _EVENT_TARGETS[event]
    timestamp = at or datetime.now(timezone.utc)

    if isinstance(target, RequestStatus):
        if target not in STATUS_TRANSITIONS[request.status]:
            raise InvalidTransition(
                f"Cannot move a {request.status.value.lower()} request to {target.value.lower()}.",
                detail={
                    "request_id": request.id,
                    "from_status": request.status.value,
                    "event": event.value,
                },
            )
        if target == RequestStatus.COMPLETED:
            if plan_type is None:
                raise InvalidArgument(
                    "plan_type is required to complete a request",
                    detail={"request_id": request.id},
                )
            if (
                requires_payment_to_complete(plan_type, request)
                and request.payment_status != PaymentStatus.PAID
            ):
                raise InvalidTransition(
                    "Pay-per-use services must be paid before they can be completed.",
                    detail={
                        "request_id": request.id,
                        "from_status": request.status.value,
                        "payment_status": request.payment_status.value,
                        "event": event.value,
                    },
                )
        updated = request.model_copy(update={"status": target, "updated_at": timestamp})
        effect = LedgerEffect.CREDIT if target == RequestStatus.CANCELED else LedgerEffect.NONE
    else:
        if target not in PAYMENT_TRANSITIONS[request.payment_status]:
            raise InvalidTransition(
                f"Cannot move payment from {request.payment_status.value.lower()} "
                f"to {target.value.lower()}.",
                detail={
                    "request_id": request.id,
                    "from_payment_status": request.payment_status.value,
                    "event": event.value,
                },
            )
        updated = request.model_copy(update={"payment_status": target, "updated_at": timestamp})
        effect = LedgerEffect.NONE

    record = TransitionRecord(
        request_id=request.id,
        timestamp=timestamp,
        previous_status=request.status,
        new_status=updated.status,
        previous_payment_status=request.payment_status,
        new_payment_status=updated.payment_status,
        event=event,
        ledger_effect=effect,
    )
    return Transition(request=updated, record=record)


__all__ = [
    "PAYMENT_TRANSITIONS",
    "STATUS_TRANSITIONS",
    "Transition",
    "allowed_events",
    "open_request",
    "requires_payment_to_complete",
    "transition",
]
