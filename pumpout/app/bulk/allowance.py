"""Bulk plan allowance computation bounded by the season cutoff."""
from __future__ import annotations

import logging

from ..exceptions import BookingRejected, InvalidArgument
from ..plans.models import PlanDescriptor, PlanType
from ..scheduling.weeks import DateLike, as_day, available_mondays, weeks_until
from .models import BulkAllowance, BulkQuote
from .pricing import compute_cost

logger = logging.getLogger(__name__)


def _require_bulk(plan: PlanDescriptor) -> None:
    if plan.type != PlanType.BULK:
        raise InvalidArgument(
            "Bulk allowance only applies to bulk plans.",
            detail={"plan_type": plan.type.value},
        )


def compute_allowance(purchase_date: DateLike, plan: PlanDescriptor) -> BulkAllowance:
    """Determine how many additional units can be bought on ``purchase_date``.

    The season cutoff is inclusive. A purchase after it yields a closed
    window rather than an error. Each remaining week holds at most one
    service, and the base quantity already reserves that many of them, so only
    the surplus weeks are purchasable. A purchase before the season opens
    counts weeks from the season start.
    """

    _require_bulk(plan)
    assert plan.season_start is not None and plan.season_end is not None

    purchase_day = as_day(purchase_date)
    season_end = plan.season_end

    if purchase_day > season_end:
        return BulkAllowance(
            max_additional_units=0,
            bookable_weeks=(),
            is_purchase_window_open=False,
            message=(
                f"Bulk plans cannot be purchased after {season_end:%B} {season_end.day}. "
                "Please wait until next season."
            ),
            total_available_weeks=0,
            season_end=season_end,
        )

    counting_from = max(purchase_day, plan.season_start)
    total_available_weeks = weeks_until(counting_from, season_end)
    max_additional_units = max(0, total_available_weeks - plan.base_quantity)
    bookable_weeks = tuple(available_mondays(counting_from, season_end))

    if max_additional_units == 0:
        message = (
            f"Your base plan covers all {total_available_weeks} available weeks "
            f"until {season_end:%B} {season_end.day}."
        )
    else:
        message = (
            f"You can purchase up to {max_additional_units} additional pump-outs "
            "for the remaining weeks."
        )

    return BulkAllowance(
        max_additional_units=max_additional_units,
        bookable_weeks=bookable_weeks,
        is_purchase_window_open=True,
        message=message,
        total_available_weeks=total_available_weeks,
        season_end=season_end,
    )


def quote_bulk_purchase(
    plan: PlanDescriptor,
    additional_units: int,
    purchase_date: DateLike,
) -> BulkQuote:
    """Price a bulk purchase after checking it fits the remaining season."""

    allowance = compute_allowance(purchase_date, plan)
    if not allowance.is_purchase_window_open:
        logger.info("Bulk quote refused after season end %s", allowance.season_end)
        raise BookingRejected(
            "season_closed",
            allowance.message,
            detail={"season_end": allowance.season_end.isoformat() if allowance.season_end else None},
        )

    if additional_units > allowance.max_additional_units:
        raise InvalidArgument(
            "Requested more additional units than weeks remain in the season.",
            detail={
                "additional_units": additional_units,
                "max_additional_units": allowance.max_additional_units,
            },
        )

    assert plan.price_per_additional is not None
    total_cost = compute_cost(plan.base_price, plan.price_per_additional, additional_units)
    return BulkQuote(
        base_price=plan.base_price,
        price_per_additional=plan.price_per_additional,
        additional_units=additional_units,
        total_cost=total_cost,
        allowance=allowance,
    )


__all__ = ["compute_allowance", "quote_bulk_purchase"]
