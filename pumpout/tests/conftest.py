"""Shared fixtures and in-memory stores for booking engine tests."""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from pumpout.app.booking import BookingRequest, PaymentStatus, RequestStatus, TransitionRecord
from pumpout.app.config import DEFAULT_CONFIG
from pumpout.app.lifecycle import BookingService, BookingStore, SubscriptionStore, TransitionLog
from pumpout.app.plans import PlanEnrollment


class InMemoryBookingRepository(SubscriptionStore, BookingStore, TransitionLog):
    def __init__(self) -> None:
        self.enrollments: Dict[str, PlanEnrollment] = {}
        self.requests: Dict[str, BookingRequest] = {}
        self.records: List[TransitionRecord] = []

    def enroll(self, enrollment: PlanEnrollment) -> PlanEnrollment:
        self.enrollments[enrollment.subscriber_id] = enrollment
        return enrollment

    def get_enrollment(self, subscriber_id: str) -> Optional[PlanEnrollment]:
        return self.enrollments.get(subscriber_id)

    def insert_request(self, request: BookingRequest) -> BookingRequest:
        self.requests[request.id] = request
        return request

    def get_request(self, request_id: str) -> Optional[BookingRequest]:
        return self.requests.get(request_id)

    def list_requests(
        self,
        subscriber_id: str,
        *,
        created_from: Optional[date] = None,
        created_to: Optional[date] = None,
    ) -> Sequence[BookingRequest]:
        results = []
        for request in self.requests.values():
            if request.subscriber_id != subscriber_id:
                continue
            created = request.created_at.date()
            if created_from is not None and created < created_from:
                continue
            if created_to is not None and created > created_to:
                continue
            results.append(request)
        return results

    def list_requests_for_week(self, week_start_date: date) -> Sequence[BookingRequest]:
        return [r for r in self.requests.values() if r.week_start_date == week_start_date]

    def save_state(
        self,
        request_id: str,
        *,
        status: RequestStatus,
        payment_status: PaymentStatus,
    ) -> Optional[BookingRequest]:
        request = self.requests.get(request_id)
        if request is None:
            return None
        updated = request.model_copy(update={"status": status, "payment_status": payment_status})
        self.requests[request_id] = updated
        return updated

    def append(self, record: TransitionRecord) -> TransitionRecord:
        self.records.append(record)
        return record

    def list_for_request(self, request_id: str) -> Sequence[TransitionRecord]:
        return [record for record in self.records if record.request_id == request_id]


class FixedClock:
    def __init__(self, current: datetime) -> None:
        self.current = current

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(repository: InMemoryBookingRepository, clock: FixedClock) -> BookingService:
    return BookingService(
        subscriptions=repository,
        bookings=repository,
        transition_log=repository,
        clock=clock,
    )


@pytest.fixture
def small_capacity_service(repository: InMemoryBookingRepository, clock: FixedClock) -> BookingService:
    return BookingService(
        subscriptions=repository,
        bookings=repository,
        transition_log=repository,
        config=replace(DEFAULT_CONFIG, weekly_capacity=1),
        clock=clock,
    )
