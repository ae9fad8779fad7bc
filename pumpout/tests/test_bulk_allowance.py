from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from pumpout.app.bulk import compute_allowance, compute_cost, quote_bulk_purchase
from pumpout.app.exceptions import BookingRejected, InvalidArgument
from pumpout.app.plans import PlanDescriptor


@pytest.fixture
def bulk_plan() -> PlanDescriptor:
    return PlanDescriptor.bulk(base_price=5000, base_quantity=4, price_per_additional=1000, year=2025)


def test_allowance_counts_weeks_left_in_season(bulk_plan: PlanDescriptor) -> None:
    allowance = compute_allowance(date(2025, 10, 1), bulk_plan)

    assert allowance.is_purchase_window_open is True
    assert allowance.total_available_weeks == 5
    assert allowance.max_additional_units == 1
    assert allowance.bookable_weeks == (
        date(2025, 10, 6),
        date(2025, 10, 13),
        date(2025, 10, 20),
        date(2025, 10, 27),
    )
    assert allowance.message == "You can purchase up to 1 additional pump-outs for the remaining weeks."


def test_allowance_on_cutoff_day_is_still_open(bulk_plan: PlanDescriptor) -> None:
    allowance = compute_allowance(datetime(2025, 10, 31, 23, 30, tzinfo=timezone.utc), bulk_plan)

    assert allowance.is_purchase_window_open is True
    assert allowance.total_available_weeks == 1
    assert allowance.max_additional_units == 0
    assert allowance.bookable_weeks == ()


def test_allowance_closes_day_after_cutoff(bulk_plan: PlanDescriptor) -> None:
    allowance = compute_allowance(date(2025, 11, 1), bulk_plan)

    assert allowance.is_purchase_window_open is False
    assert allowance.max_additional_units == 0
    assert allowance.bookable_weeks == ()
    assert allowance.message == (
        "Bulk plans cannot be purchased after October 31. Please wait until next season."
    )


def test_base_quantity_covering_season_leaves_nothing_to_buy() -> None:
    plan = PlanDescriptor.bulk(base_price=5000, base_quantity=10, price_per_additional=1000, year=2025)

    allowance = compute_allowance(date(2025, 10, 1), plan)

    assert allowance.max_additional_units == 0
    assert allowance.is_purchase_window_open is True
    assert allowance.message == "Your base plan covers all 5 available weeks until October 31."


def test_purchase_before_season_counts_from_season_start(bulk_plan: PlanDescriptor) -> None:
    allowance = compute_allowance(date(2025, 3, 1), bulk_plan)

    assert allowance.total_available_weeks == 27
    assert allowance.max_additional_units == 23
    assert allowance.bookable_weeks[0] == date(2025, 5, 5)
    assert allowance.bookable_weeks[-1] == date(2025, 10, 27)


def test_allowance_requires_bulk_plan() -> None:
    with pytest.raises(InvalidArgument):
        compute_allowance(date(2025, 6, 1), PlanDescriptor.monthly(base_price=3000, monthly_quota=4))


def test_quote_prices_additional_units(bulk_plan: PlanDescriptor) -> None:
    quote = quote_bulk_purchase(bulk_plan, 3, date(2025, 6, 2))

    assert quote.total_cost == 8000
    assert quote.additional_units == 3
    assert quote.allowance.max_additional_units == 18


def test_quote_rejects_more_units_than_weeks(bulk_plan: PlanDescriptor) -> None:
    with pytest.raises(InvalidArgument) as exc:
        quote_bulk_purchase(bulk_plan, 19, date(2025, 6, 2))

    assert exc.value.payload["max_additional_units"] == 18


def test_quote_after_season_is_rejected(bulk_plan: PlanDescriptor) -> None:
    with pytest.raises(BookingRejected) as exc:
        quote_bulk_purchase(bulk_plan, 0, date(2025, 11, 1))

    assert exc.value.code == "season_closed"
    assert exc.value.status_code == 409


def test_compute_cost_is_integer_arithmetic() -> None:
    assert compute_cost(5000, 1000, 3) == 8000
    assert compute_cost(5000, 1000, 0) == 5000


@pytest.mark.parametrize(
    "args",
    [(5000, 1000, -1), (-1, 1000, 1), (5000, 10.5, 1), (5000, 1000, True)],
)
def test_compute_cost_rejects_bad_input(args) -> None:
    with pytest.raises(InvalidArgument):
        compute_cost(*args)
