"""API routes exposing the booking engine."""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ...app_context import get_current_user
from ..booking import ActorRole
from ..exceptions import BookingEngineError
from ..schemas.booking import (
    BookingResponse,
    BulkAllowanceResponse,
    BulkQuoteRequest,
    BulkQuoteResponse,
    CreateBookingRequest,
    LifecycleEventRequest,
    QuotaSnapshotResponse,
    TransitionHistoryResponse,
)
from ..services.booking import get_booking_service


def _get_current_user(
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
    user_role: Optional[str] = Header(None, alias="X-User-Role"),
):
    return get_current_user(user_id=user_id, role=user_role)


def _actor_role(current_user: Any) -> ActorRole:
    try:
        return ActorRole(str(getattr(current_user, "role", ActorRole.MEMBER.value)))
    except ValueError:
        return ActorRole.MEMBER


def _ensure_subscriber_access(current_user: Any, subscriber_id: str) -> None:
    if _actor_role(current_user) != ActorRole.MEMBER:
        return
    if str(current_user.id) != subscriber_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def _not_found(exc: LookupError) -> HTTPException:
    message = exc.args[0] if exc.args else "Not found"
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)


router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.get("/subscribers/{subscriber_id}/quota", response_model=QuotaSnapshotResponse)
def get_quota_snapshot(
    subscriber_id: str,
    as_of: Optional[date] = Query(None, alias="asOf"),
    *,
    current_user=Depends(_get_current_user),
) -> QuotaSnapshotResponse:
    _ensure_subscriber_access(current_user, subscriber_id)
    service = get_booking_service()
    try:
        snapshot = service.quota_snapshot(subscriber_id, as_of)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return QuotaSnapshotResponse.from_snapshot(snapshot)


@router.get("/subscribers/{subscriber_id}/season-usage", response_model=QuotaSnapshotResponse)
def get_season_usage(
    subscriber_id: str,
    *,
    current_user=Depends(_get_current_user),
) -> QuotaSnapshotResponse:
    _ensure_subscriber_access(current_user, subscriber_id)
    service = get_booking_service()
    try:
        usage = service.season_usage(subscriber_id)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return QuotaSnapshotResponse.from_snapshot(usage)


@router.get("/subscribers/{subscriber_id}/bulk-allowance", response_model=BulkAllowanceResponse)
def get_bulk_allowance(
    subscriber_id: str,
    purchase_date: Optional[date] = Query(None, alias="purchaseDate"),
    *,
    current_user=Depends(_get_current_user),
) -> BulkAllowanceResponse:
    _ensure_subscriber_access(current_user, subscriber_id)
    service = get_booking_service()
    try:
        allowance = service.bulk_allowance(subscriber_id, purchase_date)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return BulkAllowanceResponse.from_allowance(allowance)


@router.post("/subscribers/{subscriber_id}/bulk-quote", response_model=BulkQuoteResponse)
def quote_bulk_purchase(
    subscriber_id: str,
    payload: BulkQuoteRequest,
    *,
    current_user=Depends(_get_current_user),
) -> BulkQuoteResponse:
    _ensure_subscriber_access(current_user, subscriber_id)
    service = get_booking_service()
    try:
        quote = service.quote_bulk(subscriber_id, payload.additional_units, payload.purchase_date)
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return BulkQuoteResponse.from_quote(quote)


@router.post("/requests", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking_request(
    payload: CreateBookingRequest,
    *,
    current_user=Depends(_get_current_user),
) -> BookingResponse:
    _ensure_subscriber_access(current_user, payload.subscriber_id)
    service = get_booking_service()
    try:
        request = service.create_request(
            payload.subscriber_id,
            payload.week_start_date,
            owner_notes=payload.owner_notes,
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return BookingResponse(request=request)


@router.post("/requests/{request_id}/events", response_model=BookingResponse)
def apply_lifecycle_event(
    request_id: str,
    payload: LifecycleEventRequest,
    *,
    current_user=Depends(_get_current_user),
) -> BookingResponse:
    service = get_booking_service()
    try:
        request = service.apply_event(
            request_id,
            payload.event,
            actor_role=_actor_role(current_user),
            actor_id=str(current_user.id),
        )
    except BookingEngineError as exc:
        raise exc.to_http_exception() from exc
    except LookupError as exc:
        raise _not_found(exc) from exc
    return BookingResponse(request=request)


@router.get("/requests/{request_id}/history", response_model=TransitionHistoryResponse)
def get_request_history(
    request_id: str,
    *,
    current_user=Depends(_get_current_user),
) -> TransitionHistoryResponse:
    service = get_booking_service()
    try:
        request = service.get_request(request_id)
        _ensure_subscriber_access(current_user, request.subscriber_id)
        records = service.history(request_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return TransitionHistoryResponse(request_id=request_id, records=records)
