"""API schemas for booking endpoints."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..booking import BookingRequest, LifecycleEvent, TransitionRecord
from ..bulk import BulkAllowance, BulkQuote
from ..ledger import QuotaSnapshot


class QuotaSnapshotResponse(BaseModel):
    used: int
    total: int
    remaining: int
    period_start: Optional[date] = Field(alias="periodStart", default=None)
    period_end: Optional[date] = Field(alias="periodEnd", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_snapshot(cls, snapshot: QuotaSnapshot) -> "QuotaSnapshotResponse":
        return cls(
            used=snapshot.used,
            total=snapshot.total,
            remaining=snapshot.remaining,
            period_start=snapshot.period_start,
            period_end=snapshot.period_end,
        )


class BulkAllowanceResponse(BaseModel):
    max_additional_units: int = Field(alias="maxAdditionalUnits")
    bookable_weeks: List[date] = Field(alias="bookableWeeks")
    is_purchase_window_open: bool = Field(alias="isPurchaseWindowOpen")
    message: str
    total_available_weeks: int = Field(alias="totalAvailableWeeks")
    season_end: Optional[date] = Field(alias="seasonEnd", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_allowance(cls, allowance: BulkAllowance) -> "BulkAllowanceResponse":
        return cls(
            max_additional_units=allowance.max_additional_units,
            bookable_weeks=list(allowance.bookable_weeks),
            is_purchase_window_open=allowance.is_purchase_window_open,
            message=allowance.message,
            total_available_weeks=allowance.total_available_weeks,
            season_end=allowance.season_end,
        )


class BulkQuoteRequest(BaseModel):
    additional_units: int = Field(alias="additionalUnits")
    purchase_date: Optional[date] = Field(alias="purchaseDate", default=None)

    model_config = ConfigDict(populate_by_name=True)


class BulkQuoteResponse(BaseModel):
    base_price: int = Field(alias="basePrice")
    price_per_additional: int = Field(alias="pricePerAdditional")
    additional_units: int = Field(alias="additionalUnits")
    total_cost: int = Field(alias="totalCost")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_quote(cls, quote: BulkQuote) -> "BulkQuoteResponse":
        return cls(
            base_price=quote.base_price,
            price_per_additional=quote.price_per_additional,
            additional_units=quote.additional_units,
            total_cost=quote.total_cost,
        )


class CreateBookingRequest(BaseModel):
    subscriber_id: str = Field(alias="subscriberId")
    week_start_date: date = Field(alias="weekStartDate")
    owner_notes: Optional[str] = Field(alias="ownerNotes", default=None)

    model_config = ConfigDict(populate_by_name=True)


class LifecycleEventRequest(BaseModel):
    event: LifecycleEvent

    model_config = ConfigDict(populate_by_name=True)


class BookingResponse(BaseModel):
    request: BookingRequest

    model_config = ConfigDict(populate_by_name=True)


class TransitionHistoryResponse(BaseModel):
    request_id: str = Field(alias="requestId")
    records: List[TransitionRecord]

    model_config = ConfigDict(populate_by_name=True)
