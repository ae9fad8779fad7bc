"""Booking flow coordinating plans, quota checks and lifecycle transitions."""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, Hashable, Iterator, List, Optional, Protocol, Sequence
from uuid import uuid4

from ..booking.models import (
    ActorRole,
    BookingRequest,
    LifecycleEvent,
    PaymentStatus,
    RequestStatus,
    TransitionRecord,
)
from ..bulk import BulkAllowance, BulkQuote, compute_allowance, quote_bulk_purchase
from ..config import DEFAULT_CONFIG, BookingConfig
from ..exceptions import ActionForbidden, BookingRejected, InvalidArgument
from ..ledger import (
    QuotaSnapshot,
    assert_quota_available,
    compute_season_usage,
    compute_snapshot,
)
from ..plans.models import PlanEnrollment, PlanType
from ..scheduling.weeks import DateLike, as_day, is_monday, is_same_week, month_bounds, week_start
from .machine import Transition, open_request, transition

logger = logging.getLogger(__name__)


class SubscriptionStore(Protocol):
    """Source of truth for the plan each subscriber currently holds."""

    def get_enrollment(self, subscriber_id: str) -> Optional[PlanEnrollment]:
        ...


class BookingStore(Protocol):
    """Persistence operations for booking requests."""

    def insert_request(self, request: BookingRequest) -> BookingRequest:
        ...

    def get_request(self, request_id: str) -> Optional[BookingRequest]:
        ...

    def list_requests(
        self,
        subscriber_id: str,
        *,
        created_from: Optional[date] = None,
        created_to: Optional[date] = None,
    ) -> Sequence[BookingRequest]:
        ...

    def list_requests_for_week(self, week_start_date: date) -> Sequence[BookingRequest]:
        ...

    def save_state(
        self,
        request_id: str,
        *,
        status: RequestStatus,
        payment_status: PaymentStatus,
    ) -> Optional[BookingRequest]:
        ...


class TransitionLog(Protocol):
    """Append-only audit log of lifecycle transitions."""

    def append(self, record: TransitionRecord) -> TransitionRecord:
        ...

    def list_for_request(self, request_id: str) -> Sequence[TransitionRecord]:
        ...


class KeyedLocks:
    """Mutexes keyed by subscriber or service week.

    An entry lives only while some caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""

        with self._guard:
            return len(self._locks)


@dataclass
class BookingService:
    """Creates requests within plan limits and applies lifecycle events.

    Locks are always taken subscriber first, then week.
    """

    subscriptions: SubscriptionStore
    bookings: BookingStore
    transition_log: TransitionLog
    config: BookingConfig = DEFAULT_CONFIG
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc))
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    week_locks: KeyedLocks = field(default_factory=KeyedLocks)

    def _now(self) -> datetime:
        return self.clock()

    def _enrollment(self, subscriber_id: str) -> PlanEnrollment:
        enrollment = self.subscriptions.get_enrollment(subscriber_id)
        if enrollment is None:
            raise LookupError(f"No active plan for subscriber {subscriber_id}")
        return enrollment

    # Read views -----------------------------------------------------------

    def quota_snapshot(self, subscriber_id: str, as_of: Optional[DateLike] = None) -> QuotaSnapshot:
        enrollment = self._enrollment(subscriber_id)
        as_of_day = as_day(as_of or self._now())
        period_start, period_end = month_bounds(as_of_day)
        requests = self.bookings.list_requests(
            subscriber_id, created_from=period_start, created_to=period_end
        )
        return compute_snapshot(enrollment.plan, requests, as_of_day)

    def season_usage(self, subscriber_id: str) -> QuotaSnapshot:
        enrollment = self._enrollment(subscriber_id)
        requests = self.bookings.list_requests(subscriber_id)
        return compute_season_usage(enrollment.plan, requests, enrollment.additional_units)

    def bulk_allowance(
        self,
        subscriber_id: str,
        purchase_date: Optional[DateLike] = None,
    ) -> BulkAllowance:
        enrollment = self._enrollment(subscriber_id)
        return compute_allowance(purchase_date or self._now(), enrollment.plan)

    def quote_bulk(
        self,
        subscriber_id: str,
        additional_units: int,
        purchase_date: Optional[DateLike] = None,
    ) -> BulkQuote:
        enrollment = self._enrollment(subscriber_id)
        return quote_bulk_purchase(enrollment.plan, additional_units, purchase_date or self._now())

    def get_request(self, request_id: str) -> BookingRequest:
        request = self.bookings.get_request(request_id)
        if request is None:
            raise LookupError(f"Request {request_id} not found")
        return request

    def history(self, request_id: str) -> List[TransitionRecord]:
        self.get_request(request_id)
        return sorted(self.transition_log.list_for_request(request_id), key=lambda r: r.timestamp)

    # Commands -------------------------------------------------------------

    def create_request(
        self,
        subscriber_id: str,
        week_start_date: DateLike,
        *,
        owner_notes: Optional[str] = None,
    ) -> BookingRequest:
        """Create a booking once the subscriber's plan allows it.

        The entitlement check runs under the subscriber's lock so two
        concurrent creations cannot both observe the last free unit. The
        capacity count and the insert also hold the week's lock so
        different subscribers cannot both take the last slot of a week.
        """

        week = as_day(week_start_date)
        if not is_monday(week):
            raise InvalidArgument(
                "week_start_date must be a Monday",
                detail={"week_start_date": week.isoformat()},
            )

        with self.locks.hold(subscriber_id):
            enrollment = self._enrollment(subscriber_id)
            now = self._now()
            current_week = week_start(now)
            if week < current_week:
                raise InvalidArgument(
                    "Cannot book a week that has already passed.",
                    detail={
                        "week_start_date": week.isoformat(),
                        "current_week": current_week.isoformat(),
                    },
                )
            is_additional_unit = self._check_entitlement(enrollment, week, now)

            opened = open_request(
                request_id=f"req_{uuid4().hex}",
                subscriber_id=subscriber_id,
                week_start_date=week,
                created_at=now,
                is_additional_unit=is_additional_unit,
                owner_notes=owner_notes,
            )
            with self.week_locks.hold(week):
                week_requests = self.bookings.list_requests_for_week(week)
                active = sum(1 for r in week_requests if r.status.occupies_capacity)

                stored = self.bookings.insert_request(opened.request)
                self._record(opened)
                logger.info(
                    "Created request %s subscriber=%s week=%s plan=%s additional=%s",
                    stored.id,
                    subscriber_id,
                    week.isoformat(),
                    enrollment.plan.type.value,
                    is_additional_unit,
                )

                if active >= self.config.weekly_capacity:
                    waitlisted = transition(stored, LifecycleEvent.WAITLIST, at=now)
                    stored = self._persist(waitlisted)
                    logger.info(
                        "Week %s at capacity (%s active); request %s waitlisted",
                        week.isoformat(),
                        active,
                        stored.id,
                    )
            return stored

    def apply_event(
        self,
        request_id: str,
        event: LifecycleEvent,
        *,
        actor_role: ActorRole = ActorRole.EMPLOYEE,
        actor_id: Optional[str] = None,
    ) -> BookingRequest:
        """Apply a lifecycle event and persist the result with its audit record."""

        try:
            event = LifecycleEvent(event)
        except ValueError as exc:
            raise InvalidArgument(
                f"Unknown lifecycle event: {event!r}",
                detail={"request_id": request_id},
            ) from exc
        week = self.get_request(request_id).week_start_date
        with self.week_locks.hold(week):
            return self._apply_event_locked(request_id, event, actor_role, actor_id)

    # Internals ------------------------------------------------------------

    def _apply_event_locked(
        self,
        request_id: str,
        event: LifecycleEvent,
        actor_role: ActorRole,
        actor_id: Optional[str],
    ) -> BookingRequest:
        request = self.get_request(request_id)

        if actor_role == ActorRole.MEMBER:
            if event != LifecycleEvent.CANCEL:
                raise ActionForbidden(
                    "Members can only cancel requests.",
                    detail={"request_id": request_id, "event": event.value},
                )
            if actor_id is not None and actor_id != request.subscriber_id:
                raise ActionForbidden(
                    "Not authorized to update this request.",
                    detail={"request_id": request_id},
                )

        enrollment = self._enrollment(request.subscriber_id)
        moved = transition(request, event, plan_type=enrollment.plan.type, at=self._now())
        updated = self._persist(moved)
        logger.info(
            "Request %s %s: %s/%s -> %s/%s",
            request_id,
            event.value,
            request.status.value,
            request.payment_status.value,
            updated.status.value,
            updated.payment_status.value,
        )

        if request.status.occupies_capacity and updated.status.is_terminal:
            self._promote_waitlisted(updated.week_start_date)
        return updated

    def _check_entitlement(self, enrollment: PlanEnrollment, week: date, now: datetime) -> bool:
        """Raise when the plan forbids a booking for ``week``.

        Returns whether the booking consumes a bulk unit bought on top of the
        base quantity.
        """

        plan = enrollment.plan
        subscriber_id = enrollment.subscriber_id

        if plan.type == PlanType.MONTHLY:
            snapshot = self.quota_snapshot(subscriber_id, now)
            self._reject_if_exhausted(subscriber_id, snapshot, "quota_exhausted")
            return False

        if plan.type.is_season_bound:
            assert plan.season_start is not None and plan.season_end is not None
            if not plan.season_start <= week <= plan.season_end:
                logger.info("Refused request subscriber=%s week=%s outside season", subscriber_id, week)
                raise BookingRejected(
                    "season_closed",
                    "Your plan does not cover this week. Please purchase a plan for next season.",
                    detail={
                        "week_start_date": week.isoformat(),
                        "season_start": plan.season_start.isoformat(),
                        "season_end": plan.season_end.isoformat(),
                    },
                )

            existing = [r for r in self.bookings.list_requests(subscriber_id) if r.counts_against_quota]
            if any(is_same_week(r.week_start_date, week) for r in existing):
                logger.info("Refused request subscriber=%s week=%s already booked", subscriber_id, week)
                raise BookingRejected(
                    "week_already_booked",
                    "You already have a pump-out request for this week. "
                    "Only one service per week is allowed.",
                    detail={"week_start_date": week.isoformat()},
                )

            usage = compute_season_usage(plan, existing, enrollment.additional_units)
            self._reject_if_exhausted(subscriber_id, usage, "allowance_exhausted")
            return plan.type == PlanType.BULK and usage.used >= plan.base_quantity

        return False

    def _reject_if_exhausted(self, subscriber_id: str, snapshot: QuotaSnapshot, code: str) -> None:
        if snapshot.exhausted:
            logger.info(
                "Refused request subscriber=%s %s used=%s total=%s",
                subscriber_id,
                code,
                snapshot.used,
                snapshot.total,
            )
        assert_quota_available(snapshot, error_code=code)

    def _record(self, moved: Transition) -> None:
        self.transition_log.append(moved.record)

    def _persist(self, moved: Transition) -> BookingRequest:
        stored = self.bookings.save_state(
            moved.request.id,
            status=moved.request.status,
            payment_status=moved.request.payment_status,
        )
        if stored is None:
            raise LookupError(f"Request {moved.request.id} disappeared while updating")
        self._record(moved)
        return stored

    def _promote_waitlisted(self, week: date) -> List[BookingRequest]:
        week_requests = self.bookings.list_requests_for_week(week)
        active = sum(1 for r in week_requests if r.status.occupies_capacity)
        waitlisted = sorted(
            (r for r in week_requests if r.status == RequestStatus.WAITLISTED),
            key=lambda r: r.created_at,
        )

        promoted: List[BookingRequest] = []
        for request in waitlisted:
            if active >= self.config.weekly_capacity:
                break
            moved = transition(request, LifecycleEvent.SCHEDULE, at=self._now())
            promoted.append(self._persist(moved))
            active += 1
            logger.info("Promoted waitlisted request %s for week %s", request.id, week.isoformat())
        return promoted


__all__ = [
    "BookingService",
    "BookingStore",
    "KeyedLocks",
    "SubscriptionStore",
    "TransitionLog",
]
