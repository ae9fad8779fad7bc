"""Quota ledger computed on demand from current request state."""

from .quota import (
    QuotaSnapshot,
    assert_quota_available,
    compute_season_usage,
    compute_snapshot,
    season_total_units,
)

__all__ = [
    "QuotaSnapshot",
    "assert_quota_available",
    "compute_season_usage",
    "compute_snapshot",
    "season_total_units",
]
