from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from pumpout.app.booking import LedgerEffect, LifecycleEvent, PaymentStatus, RequestStatus
from pumpout.app.exceptions import InvalidArgument, InvalidTransition
from pumpout.app.lifecycle import allowed_events, open_request, requires_payment_to_complete, transition
from pumpout.app.plans import PlanType

NOW = datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)


def _opened(**kwargs):
    return open_request(
        request_id="req-1",
        subscriber_id="sub-1",
        week_start_date=date(2025, 6, 9),
        created_at=NOW,
        **kwargs,
    )


def test_open_request_starts_requested_pending_with_debit() -> None:
    opened = _opened()

    assert opened.request.status == RequestStatus.REQUESTED
    assert opened.request.payment_status == PaymentStatus.PENDING
    assert opened.record.is_creation
    assert opened.ledger_effect == LedgerEffect.DEBIT


def test_open_request_rejects_non_monday() -> None:
    with pytest.raises(InvalidArgument):
        open_request(request_id="req-1", subscriber_id="sub-1", week_start_date=date(2025, 6, 10))


def test_completed_request_cannot_be_canceled() -> None:
    request = _opened().request
    request = transition(request, LifecycleEvent.SCHEDULE).request
    request = transition(request, LifecycleEvent.COMPLETE, plan_type=PlanType.MONTHLY).request

    with pytest.raises(InvalidTransition) as exc:
        transition(request, LifecycleEvent.CANCEL)

    assert exc.value.code == "invalid_transition"
    assert exc.value.payload["from_status"] == "Completed"


def test_one_time_completion_requires_payment() -> None:
    scheduled = transition(_opened().request, LifecycleEvent.SCHEDULE).request

    with pytest.raises(InvalidTransition):
        transition(scheduled, LifecycleEvent.COMPLETE, plan_type=PlanType.ONE_TIME)

    paid = transition(scheduled, LifecycleEvent.MARK_PAID).request
    completed = transition(paid, LifecycleEvent.COMPLETE, plan_type=PlanType.ONE_TIME)

    assert completed.request.status == RequestStatus.COMPLETED
    assert completed.request.payment_status == PaymentStatus.PAID
    assert completed.ledger_effect == LedgerEffect.NONE


def test_prepaid_plans_complete_while_pending() -> None:
    scheduled = transition(_opened().request, LifecycleEvent.SCHEDULE).request

    completed = transition(scheduled, LifecycleEvent.COMPLETE, plan_type=PlanType.MONTHLY)

    assert completed.request.status == RequestStatus.COMPLETED
    assert completed.request.payment_status == PaymentStatus.PENDING


def test_additional_bulk_units_are_pay_per_use() -> None:
    extra = _opened(is_additional_unit=True).request
    base = _opened().request

    assert requires_payment_to_complete(PlanType.BULK, extra)
    assert not requires_payment_to_complete(PlanType.BULK, base)
    assert not requires_payment_to_complete(PlanType.SEASONAL, extra)


def test_complete_requires_plan_type() -> None:
    scheduled = transition(_opened().request, LifecycleEvent.SCHEDULE).request

    with pytest.raises(InvalidArgument):
        transition(scheduled, LifecycleEvent.COMPLETE)


def test_payment_axis_moves_independently() -> None:
    request = _opened().request

    failed = transition(request, "mark_failed").request
    retried = transition(failed, LifecycleEvent.RETRY_PAYMENT).request
    paid = transition(retried, LifecycleEvent.MARK_PAID).request
    refunded = transition(paid, LifecycleEvent.REFUND).request

    assert refunded.status == RequestStatus.REQUESTED
    assert refunded.payment_status == PaymentStatus.REFUNDED
    with pytest.raises(InvalidTransition):
        transition(refunded, LifecycleEvent.MARK_PAID)


def test_refund_requires_paid() -> None:
    with pytest.raises(InvalidTransition):
        transition(_opened().request, LifecycleEvent.REFUND)


def test_cancel_credits_quota_and_records_both_axes() -> None:
    request = _opened().request
    moved = transition(request, LifecycleEvent.CANCEL, at=NOW)

    assert moved.ledger_effect == LedgerEffect.CREDIT
    assert moved.record.previous_status == RequestStatus.REQUESTED
    assert moved.record.new_status == RequestStatus.CANCELED
    assert moved.record.previous_payment_status == PaymentStatus.PENDING
    assert moved.record.new_payment_status == PaymentStatus.PENDING
    assert moved.record.event == LifecycleEvent.CANCEL


def test_waitlisted_can_be_scheduled_or_canceled() -> None:
    waitlisted = transition(_opened().request, LifecycleEvent.WAITLIST).request

    assert set(allowed_events(waitlisted)) == {
        LifecycleEvent.SCHEDULE,
        LifecycleEvent.CANCEL,
        LifecycleEvent.MARK_PAID,
        LifecycleEvent.MARK_FAILED,
    }
    with pytest.raises(InvalidTransition):
        transition(waitlisted, LifecycleEvent.COMPLETE, plan_type=PlanType.MONTHLY)


def test_unknown_event_is_rejected() -> None:
    with pytest.raises(InvalidArgument):
        transition(_opened().request, "teleport")
