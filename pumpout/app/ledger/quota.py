"""Quota accounting for monthly and season-bound plans."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..booking.models import BookingRequest
from ..exceptions import BookingRejected, InvalidArgument
from ..plans.models import PlanDescriptor, PlanType
from ..scheduling.weeks import DateLike, as_day, available_mondays, month_bounds


@dataclass(frozen=True)
class QuotaSnapshot:
    """Units used and remaining in the accounting period containing ``as_of``."""

    used: int
    total: int
    remaining: int
    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    def to_dict(self) -> dict[str, object]:
        """Serialize the snapshot for logging or telemetry."""

        return {
            "used": self.used,
            "total": self.total,
            "remaining": self.remaining,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
        }


def compute_snapshot(
    plan: PlanDescriptor,
    requests: Iterable[BookingRequest],
    as_of: DateLike,
) -> QuotaSnapshot:
    """Count non-canceled requests created in the calendar month of ``as_of``.

    Exclusion of canceled requests depends only on their current status, so a
    request canceled in a later month is still removed from the month it was
    created in. ``remaining`` is clamped at zero when recorded usage already
    exceeds the quota.
    """

    if plan.type != PlanType.MONTHLY:
        raise InvalidArgument(
            "Quota snapshots only apply to monthly plans.",
            detail={"plan_type": plan.type.value},
        )
    assert plan.monthly_quota is not None

    period_start, period_end = month_bounds(as_of)
    used = sum(
        1
        for request in requests
        if request.counts_against_quota
        and period_start <= as_day(request.created_at) <= period_end
    )
    return QuotaSnapshot(
        used=used,
        total=plan.monthly_quota,
        remaining=max(0, plan.monthly_quota - used),
        period_start=period_start,
        period_end=period_end,
    )


def season_total_units(plan: PlanDescriptor, additional_units: int = 0) -> int:
    """Units a season-bound plan entitles the subscriber to."""

    if plan.type == PlanType.BULK:
        return plan.base_quantity + max(additional_units, 0)
    if plan.type == PlanType.SEASONAL:
        assert plan.season_start is not None and plan.season_end is not None
        return len(available_mondays(plan.season_start, plan.season_end))
    raise InvalidArgument(
        "Season usage only applies to seasonal and bulk plans.",
        detail={"plan_type": plan.type.value},
    )


def compute_season_usage(
    plan: PlanDescriptor,
    requests: Iterable[BookingRequest],
    additional_units: int = 0,
) -> QuotaSnapshot:
    """Count non-canceled requests whose service week lies in the plan's season."""

    total = season_total_units(plan, additional_units)
    assert plan.season_start is not None and plan.season_end is not None

    used = sum(
        1
        for request in requests
        if request.counts_against_quota
        and plan.season_start <= request.week_start_date <= plan.season_end
    )
    return QuotaSnapshot(
        used=used,
        total=total,
        remaining=max(0, total - used),
        period_start=plan.season_start,
        period_end=plan.season_end,
    )


def assert_quota_available(
    snapshot: QuotaSnapshot,
    *,
    error_code: str = "quota_exhausted",
) -> QuotaSnapshot:
    """Raise when no units remain in the snapshot's period."""

    if snapshot.exhausted:
        raise BookingRejected(
            error_code,
            f"You have used all {snapshot.total} pump-outs included in your plan for this period.",
            detail=snapshot.to_dict(),
        )
    return snapshot


__all__ = [
    "QuotaSnapshot",
    "assert_quota_available",
    "compute_season_usage",
    "compute_snapshot",
    "season_total_units",
]
