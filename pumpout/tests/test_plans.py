from __future__ import annotations

from datetime import date

import pytest

from pumpout.app.config import load_booking_config
from pumpout.app.exceptions import InvalidArgument
from pumpout.app.plans import PlanDescriptor, PlanEnrollment, PlanType


def test_factories_fill_type_specific_fields() -> None:
    one_time = PlanDescriptor.one_time(base_price=4500)
    monthly = PlanDescriptor.monthly(base_price=12000, monthly_quota=4)
    seasonal = PlanDescriptor.seasonal(base_price=60000, year=2025)

    assert one_time.base_quantity == 1
    assert monthly.monthly_quota == 4
    assert (seasonal.season_start, seasonal.season_end) == (date(2025, 5, 1), date(2025, 10, 31))
    assert seasonal.type.is_season_bound
    assert not monthly.type.is_season_bound


def test_seasonal_factory_honours_config() -> None:
    config = load_booking_config({"SEASON_START_MONTH": "6", "SEASON_END_MONTH": "9", "SEASON_END_DAY": "30"})

    plan = PlanDescriptor.bulk(
        base_price=5000, base_quantity=2, price_per_additional=1000, year=2026, config=config
    )

    assert plan.season_start == date(2026, 6, 1)
    assert plan.season_end == date(2026, 9, 30)


@pytest.mark.parametrize(
    "fields",
    [
        {"type": PlanType.MONTHLY, "base_price": 100},
        {"type": PlanType.MONTHLY, "base_price": 100, "monthly_quota": 2, "price_per_additional": 10},
        {"type": PlanType.MONTHLY, "base_price": 100, "monthly_quota": 2, "base_quantity": 3},
        {"type": PlanType.ONE_TIME, "base_price": 100, "monthly_quota": 2},
        {
            "type": PlanType.BULK,
            "base_price": 100,
            "season_start": date(2025, 5, 1),
            "season_end": date(2025, 10, 31),
        },
        {"type": PlanType.SEASONAL, "base_price": 100, "season_start": date(2025, 5, 1)},
        {
            "type": PlanType.SEASONAL,
            "base_price": 100,
            "season_start": date(2025, 11, 1),
            "season_end": date(2025, 10, 31),
        },
        {"type": PlanType.ONE_TIME, "base_price": -1},
    ],
)
def test_build_rejects_fields_that_do_not_match_type(fields) -> None:
    with pytest.raises(InvalidArgument) as exc:
        PlanDescriptor.build(**fields)

    assert exc.value.code == "invalid_argument"
    assert exc.value.payload["errors"]


def test_plan_type_values_match_wire_names() -> None:
    assert PlanType("one-time") is PlanType.ONE_TIME
    assert [plan.value for plan in PlanType] == ["one-time", "monthly", "seasonal", "bulk"]


def test_enrollment_total_units() -> None:
    plan = PlanDescriptor.bulk(base_price=5000, base_quantity=4, price_per_additional=1000, year=2025)

    enrollment = PlanEnrollment(subscriber_id="sub-1", plan=plan, additional_units=3)

    assert enrollment.total_units == 7
