"""Bulk plan allowance and pricing."""

from .allowance import compute_allowance, quote_bulk_purchase
from .models import BulkAllowance, BulkQuote
from .pricing import compute_cost

__all__ = [
    "BulkAllowance",
    "BulkQuote",
    "compute_allowance",
    "compute_cost",
    "quote_bulk_purchase",
]
