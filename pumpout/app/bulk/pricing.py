"""Integer price arithmetic for bulk plans."""
from __future__ import annotations

from ..exceptions import InvalidArgument


def _require_int(name: str, value: object) -> int:
    # Money never passes through float.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer", detail={name: repr(value)})
    return value


def compute_cost(base_price: int, price_per_additional: int, additional_units: int) -> int:
    """Return ``base_price + price_per_additional * additional_units`` in minor units."""

    base_price = _require_int("base_price", base_price)
    price_per_additional = _require_int("price_per_additional", price_per_additional)
    additional_units = _require_int("additional_units", additional_units)

    if additional_units < 0:
        raise InvalidArgument(
            "additional_units must be >= 0",
            detail={"additional_units": additional_units},
        )
    if base_price < 0 or price_per_additional < 0:
        raise InvalidArgument(
            "prices must be >= 0",
            detail={"base_price": base_price, "price_per_additional": price_per_additional},
        )
    return base_price + price_per_additional * additional_units


__all__ = ["compute_cost"]
