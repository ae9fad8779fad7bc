"""Plan descriptors describing what a subscriber purchased."""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..config import BookingConfig
from ..exceptions import InvalidArgument
from ..scheduling.weeks import season_window


class PlanType(str, Enum):
    """Service levels a subscriber can purchase."""

    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    SEASONAL = "seasonal"
    BULK = "bulk"

    @property
    def is_season_bound(self) -> bool:
        return self in {PlanType.SEASONAL, PlanType.BULK}


class PlanDescriptor(BaseModel):
    """Immutable entitlement contract for a purchased service level.

    Money fields are integers in minor currency units. Validation enforces
    that the optional fields match the plan type:

    * ``MONTHLY`` requires ``monthly_quota`` and carries no base quantity or
      per-unit price.
    * ``BULK`` requires ``price_per_additional`` and carries no monthly quota.
    * ``SEASONAL`` and ``BULK`` require both season bounds.
    """

    type: PlanType
    base_price: int = Field(ge=0)
    base_quantity: int = Field(default=0, ge=0)
    price_per_additional: Optional[int] = Field(default=None, ge=0)
    monthly_quota: Optional[int] = Field(default=None, ge=0)
    season_start: Optional[date] = None
    season_end: Optional[date] = None
    name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_fields_match_type(self) -> "PlanDescriptor":
        if self.type == PlanType.MONTHLY:
            if self.monthly_quota is None:
                raise ValueError("monthly plans require monthly_quota")
            if self.price_per_additional is not None:
                raise ValueError("monthly plans cannot set price_per_additional")
            if self.base_quantity != 0:
                raise ValueError("monthly plans cannot set base_quantity")
        elif self.monthly_quota is not None:
            raise ValueError(f"{self.type.value} plans cannot set monthly_quota")

        if self.type == PlanType.BULK and self.price_per_additional is None:
            raise ValueError("bulk plans require price_per_additional")
        if self.type != PlanType.BULK and self.price_per_additional is not None:
            raise ValueError(f"{self.type.value} plans cannot set price_per_additional")

        if self.type.is_season_bound:
            if self.season_start is None or self.season_end is None:
                raise ValueError(f"{self.type.value} plans require season_start and season_end")
            if self.season_start > self.season_end:
                raise ValueError("season_start must not fall after season_end")
        return self

    @classmethod
    def build(cls, **fields: object) -> "PlanDescriptor":
        """Validate ``fields`` and raise :class:`InvalidArgument` on failure."""

        try:
            return cls(**fields)
        except ValidationError as exc:
            raise InvalidArgument(
                "Plan descriptor is missing or has invalid fields for its type.",
                detail={"errors": [error["msg"] for error in exc.errors()]},
            ) from exc

    @classmethod
    def one_time(cls, *, base_price: int, name: Optional[str] = None) -> "PlanDescriptor":
        return cls.build(type=PlanType.ONE_TIME, base_price=base_price, base_quantity=1, name=name)

    @classmethod
    def monthly(
        cls,
        *,
        base_price: int,
        monthly_quota: int,
        name: Optional[str] = None,
    ) -> "PlanDescriptor":
        return cls.build(
            type=PlanType.MONTHLY,
            base_price=base_price,
            monthly_quota=monthly_quota,
            name=name,
        )

    @classmethod
    def seasonal(
        cls,
        *,
        base_price: int,
        year: int,
        config: Optional[BookingConfig] = None,
        name: Optional[str] = None,
    ) -> "PlanDescriptor":
        start, end = season_window(year, config)
        return cls.build(
            type=PlanType.SEASONAL,
            base_price=base_price,
            season_start=start,
            season_end=end,
            name=name,
        )

    @classmethod
    def bulk(
        cls,
        *,
        base_price: int,
        base_quantity: int,
        price_per_additional: int,
        year: int,
        config: Optional[BookingConfig] = None,
        name: Optional[str] = None,
    ) -> "PlanDescriptor":
        start, end = season_window(year, config)
        return cls.build(
            type=PlanType.BULK,
            base_price=base_price,
            base_quantity=base_quantity,
            price_per_additional=price_per_additional,
            season_start=start,
            season_end=end,
            name=name,
        )


class PlanEnrollment(BaseModel):
    """A subscriber's single active plan plus any extra bulk units bought."""

    subscriber_id: str
    plan: PlanDescriptor
    additional_units: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def total_units(self) -> int:
        """Units purchased for the season (bulk plans only)."""

        return self.plan.base_quantity + self.additional_units
