"""Booking engine configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional
import os


@dataclass(frozen=True)
class BookingConfig:
    """Configuration for season bounds, weekly capacity and storage."""

    season_start_month: int
    season_start_day: int
    season_end_month: int
    season_end_day: int
    weekly_capacity: int
    log_level: str
    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str

    @property
    def db_config(self) -> Dict[str, Any]:
        return {
            "host": self.db_host,
            "port": self.db_port,
            "dbname": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
        }


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _validate_month_day(month: int, day: int, label: str) -> None:
    try:
        # 2024 is a leap year so Feb 29 stays representable.
        date(2024, month, day)
    except ValueError as exc:
        raise ValueError(f"Invalid {label} month/day: {month}/{day}") from exc


def load_booking_config(env: Optional[Mapping[str, str]] = None) -> BookingConfig:
    """Load :class:`BookingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    season_start_month = _to_int(env_mapping.get("SEASON_START_MONTH"), default=5)
    season_start_day = _to_int(env_mapping.get("SEASON_START_DAY"), default=1)
    season_end_month = _to_int(env_mapping.get("SEASON_END_MONTH"), default=10)
    season_end_day = _to_int(env_mapping.get("SEASON_END_DAY"), default=31)
    _validate_month_day(season_start_month, season_start_day, "season start")
    _validate_month_day(season_end_month, season_end_day, "season end")
    if (season_start_month, season_start_day) > (season_end_month, season_end_day):
        raise ValueError("Season start must not fall after season end")

    weekly_capacity = max(1, _to_int(env_mapping.get("WEEKLY_CAPACITY"), default=90))
    log_level = (env_mapping.get("BOOKING_LOG_LEVEL") or "INFO").strip().upper() or "INFO"

    return BookingConfig(
        season_start_month=season_start_month,
        season_start_day=season_start_day,
        season_end_month=season_end_month,
        season_end_day=season_end_day,
        weekly_capacity=weekly_capacity,
        log_level=log_level,
        db_host=env_mapping.get("DB_HOST", "127.0.0.1"),
        db_port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        db_name=env_mapping.get("DB_NAME", "pumpout_db"),
        db_user=env_mapping.get("DB_USER", "pumpout_user"),
        db_password=env_mapping.get("DB_PASSWORD", "pumpout_pass"),
    )


# Built-in defaults, independent of the process environment.
DEFAULT_CONFIG = load_booking_config({})


__all__ = ["BookingConfig", "DEFAULT_CONFIG", "load_booking_config"]
