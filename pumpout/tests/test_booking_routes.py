from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from pumpout.app.booking import LifecycleEvent, RequestStatus
from pumpout.app.plans import PlanDescriptor, PlanEnrollment
from pumpout.app.routes import booking as booking_routes
from pumpout.app.schemas.booking import BulkQuoteRequest, CreateBookingRequest, LifecycleEventRequest

MEMBER = SimpleNamespace(id="sub-1", role="member")
EMPLOYEE = SimpleNamespace(id="emp-1", role="employee")


@pytest.fixture(autouse=True)
def patch_service(monkeypatch, service):
    monkeypatch.setattr(booking_routes, "get_booking_service", lambda: service)
    return service


@pytest.fixture
def monthly_member(repository):
    plan = PlanDescriptor.monthly(base_price=12000, monthly_quota=1)
    return repository.enroll(PlanEnrollment(subscriber_id="sub-1", plan=plan))


def _create(week: date = date(2025, 6, 9), user=MEMBER):
    payload = CreateBookingRequest(subscriberId="sub-1", weekStartDate=week)
    return booking_routes.create_booking_request(payload, current_user=user)


def test_create_and_read_quota(monthly_member) -> None:
    response = _create()

    assert response.request.status == RequestStatus.REQUESTED

    snapshot = booking_routes.get_quota_snapshot("sub-1", None, current_user=MEMBER)
    assert snapshot.used == 1
    assert snapshot.remaining == 0
    assert snapshot.model_dump(by_alias=True)["periodStart"] == date(2025, 6, 1)


def test_quota_exhausted_maps_to_conflict(monthly_member) -> None:
    _create()

    with pytest.raises(HTTPException) as exc:
        _create(week=date(2025, 6, 16))

    assert exc.value.status_code == 409
    assert exc.value.detail["error"] == "quota_exhausted"


def test_members_cannot_read_other_subscribers(monthly_member) -> None:
    with pytest.raises(HTTPException) as exc:
        booking_routes.get_quota_snapshot("sub-2", None, current_user=MEMBER)

    assert exc.value.status_code == 403


def test_members_cannot_read_other_subscribers_history(monthly_member) -> None:
    created = _create()
    other_member = SimpleNamespace(id="sub-2", role="member")

    with pytest.raises(HTTPException) as exc:
        booking_routes.get_request_history(created.request.id, current_user=other_member)

    assert exc.value.status_code == 403

    own = booking_routes.get_request_history(created.request.id, current_user=MEMBER)
    assert [record.new_status for record in own.records] == [RequestStatus.REQUESTED]


def test_member_event_other_than_cancel_is_forbidden(monthly_member) -> None:
    created = _create()

    with pytest.raises(HTTPException) as exc:
        booking_routes.apply_lifecycle_event(
            created.request.id,
            LifecycleEventRequest(event=LifecycleEvent.SCHEDULE),
            current_user=MEMBER,
        )

    assert exc.value.status_code == 403
    assert exc.value.detail["error"] == "member_cancel_only"


def test_employee_schedules_and_history_lists_records(monthly_member) -> None:
    created = _create()

    scheduled = booking_routes.apply_lifecycle_event(
        created.request.id,
        LifecycleEventRequest(event=LifecycleEvent.SCHEDULE),
        current_user=EMPLOYEE,
    )
    history = booking_routes.get_request_history(created.request.id, current_user=EMPLOYEE)

    assert scheduled.request.status == RequestStatus.SCHEDULED
    assert [record.new_status for record in history.records] == [
        RequestStatus.REQUESTED,
        RequestStatus.SCHEDULED,
    ]


def test_unknown_request_returns_not_found(monthly_member) -> None:
    with pytest.raises(HTTPException) as exc:
        booking_routes.get_request_history("missing", current_user=EMPLOYEE)

    assert exc.value.status_code == 404


def test_unenrolled_subscriber_returns_not_found() -> None:
    with pytest.raises(HTTPException) as exc:
        _create(user=EMPLOYEE)

    assert exc.value.status_code == 404


def test_bulk_allowance_and_quote(repository) -> None:
    plan = PlanDescriptor.bulk(base_price=5000, base_quantity=4, price_per_additional=1000, year=2025)
    repository.enroll(PlanEnrollment(subscriber_id="sub-1", plan=plan))

    allowance = booking_routes.get_bulk_allowance("sub-1", date(2025, 10, 1), current_user=MEMBER)
    quote = booking_routes.quote_bulk_purchase(
        "sub-1",
        BulkQuoteRequest(additionalUnits=1, purchaseDate=date(2025, 10, 1)),
        current_user=MEMBER,
    )
    closed = booking_routes.get_bulk_allowance("sub-1", date(2025, 11, 1), current_user=MEMBER)

    assert allowance.max_additional_units == 1
    assert len(allowance.bookable_weeks) == 4
    assert quote.total_cost == 6000
    assert closed.is_purchase_window_open is False

    with pytest.raises(HTTPException) as exc:
        booking_routes.quote_bulk_purchase(
            "sub-1",
            BulkQuoteRequest(additionalUnits=1, purchaseDate=date(2025, 11, 1)),
            current_user=MEMBER,
        )
    assert exc.value.status_code == 409
    assert exc.value.detail["error"] == "season_closed"
