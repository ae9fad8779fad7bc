"""Derived views for bulk plan purchases."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple


@dataclass(frozen=True)
class BulkAllowance:
    """How many units a bulk buyer may add and which weeks remain bookable."""

    max_additional_units: int
    bookable_weeks: Tuple[date, ...]
    is_purchase_window_open: bool
    message: str
    total_available_weeks: int = 0
    season_end: Optional[date] = None

    def to_dict(self) -> dict[str, object]:
        """Serialize the allowance for logging or API responses."""

        return {
            "max_additional_units": self.max_additional_units,
            "bookable_weeks": [week.isoformat() for week in self.bookable_weeks],
            "is_purchase_window_open": self.is_purchase_window_open,
            "message": self.message,
            "total_available_weeks": self.total_available_weeks,
            "season_end": self.season_end.isoformat() if self.season_end else None,
        }


@dataclass(frozen=True)
class BulkQuote:
    """Price of a bulk plan with a chosen number of additional units."""

    base_price: int
    price_per_additional: int
    additional_units: int
    total_cost: int
    allowance: BulkAllowance = field(repr=False)
