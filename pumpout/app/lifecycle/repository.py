"""PostgreSQL persistence for enrollments, booking requests and the transition log."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterable, List, Optional

import psycopg2
import psycopg2.errors
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ...app_context import get_conn
from ..booking.models import (
    BookingRequest,
    LedgerEffect,
    LifecycleEvent,
    PaymentStatus,
    RequestStatus,
    TransitionRecord,
)
from ..exceptions import BookingRejected
from ..plans.models import PlanDescriptor, PlanEnrollment, PlanType


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS plan_enrollment (
    subscriber_id TEXT PRIMARY KEY,
    plan_type TEXT NOT NULL,
    plan_name TEXT,
    base_price INTEGER NOT NULL,
    base_quantity INTEGER NOT NULL DEFAULT 0,
    price_per_additional INTEGER,
    monthly_quota INTEGER,
    season_start DATE,
    season_end DATE,
    additional_units INTEGER NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS pump_out_request (
    id TEXT PRIMARY KEY,
    subscriber_id TEXT NOT NULL,
    week_start_date DATE NOT NULL,
    status TEXT NOT NULL DEFAULT 'Requested',
    payment_status TEXT NOT NULL DEFAULT 'Pending',
    is_additional_unit BOOLEAN NOT NULL DEFAULT FALSE,
    owner_notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS pump_out_request_active_week
    ON pump_out_request (subscriber_id, week_start_date)
    WHERE status <> 'Canceled';

CREATE INDEX IF NOT EXISTS pump_out_request_subscriber_created
    ON pump_out_request (subscriber_id, created_at);

CREATE TABLE IF NOT EXISTS pump_out_log (
    id SERIAL PRIMARY KEY,
    request_id TEXT NOT NULL REFERENCES pump_out_request (id),
    change_timestamp TIMESTAMPTZ NOT NULL,
    prev_status TEXT,
    new_status TEXT NOT NULL,
    prev_payment_status TEXT,
    new_payment_status TEXT NOT NULL,
    event TEXT,
    ledger_effect TEXT NOT NULL
);
"""


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_enrollment(row: dict) -> PlanEnrollment:
    plan = PlanDescriptor(
        type=PlanType(row["plan_type"]),
        name=row.get("plan_name"),
        base_price=int(row["base_price"]),
        base_quantity=int(row.get("base_quantity") or 0),
        price_per_additional=row.get("price_per_additional"),
        monthly_quota=row.get("monthly_quota"),
        season_start=row.get("season_start"),
        season_end=row.get("season_end"),
    )
    return PlanEnrollment(
        subscriber_id=row["subscriber_id"],
        plan=plan,
        additional_units=int(row.get("additional_units") or 0),
    )


def _row_to_request(row: dict) -> BookingRequest:
    return BookingRequest(
        id=row["id"],
        subscriber_id=row["subscriber_id"],
        week_start_date=row["week_start_date"],
        status=RequestStatus(row["status"]),
        payment_status=PaymentStatus(row["payment_status"]),
        is_additional_unit=bool(row.get("is_additional_unit")),
        owner_notes=row.get("owner_notes"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_record(row: dict) -> TransitionRecord:
    return TransitionRecord(
        request_id=row["request_id"],
        timestamp=row["change_timestamp"],
        previous_status=RequestStatus(row["prev_status"]) if row.get("prev_status") else None,
        new_status=RequestStatus(row["new_status"]),
        previous_payment_status=(
            PaymentStatus(row["prev_payment_status"]) if row.get("prev_payment_status") else None
        ),
        new_payment_status=PaymentStatus(row["new_payment_status"]),
        event=LifecycleEvent(row["event"]) if row.get("event") else None,
        ledger_effect=LedgerEffect(row["ledger_effect"]),
    )


class PostgresBookingRepository:
    """Concrete store persisting booking state in PostgreSQL.

    Implements the subscription store, booking store and transition log
    protocols used by :class:`~pumpout.app.lifecycle.service.BookingService`.
    """

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterable[PgCursor]:
        with managed_connection(self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(SCHEMA_SQL)

    def get_enrollment(self, subscriber_id: str) -> Optional[PlanEnrollment]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM plan_enrollment
                WHERE subscriber_id = %s
                LIMIT 1
                """,
                (subscriber_id,),
            )
            row = cursor.fetchone()
            return _row_to_enrollment(row) if row else None

    def save_enrollment(self, enrollment: PlanEnrollment) -> PlanEnrollment:
        plan = enrollment.plan
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO plan_enrollment (
                    subscriber_id,
                    plan_type,
                    plan_name,
                    base_price,
                    base_quantity,
                    price_per_additional,
                    monthly_quota,
                    season_start,
                    season_end,
                    additional_units
                )
                VALUES (%(subscriber_id)s, %(plan_type)s, %(plan_name)s, %(base_price)s,
                        %(base_quantity)s, %(price_per_additional)s, %(monthly_quota)s,
                        %(season_start)s, %(season_end)s, %(additional_units)s)
                ON CONFLICT (subscriber_id) DO UPDATE SET
                    plan_type = EXCLUDED.plan_type,
                    plan_name = EXCLUDED.plan_name,
                    base_price = EXCLUDED.base_price,
                    base_quantity = EXCLUDED.base_quantity,
                    price_per_additional = EXCLUDED.price_per_additional,
                    monthly_quota = EXCLUDED.monthly_quota,
                    season_start = EXCLUDED.season_start,
                    season_end = EXCLUDED.season_end,
                    additional_units = EXCLUDED.additional_units,
                    updated_at = NOW()
                RETURNING *
                """,
                {
                    "subscriber_id": enrollment.subscriber_id,
                    "plan_type": plan.type.value,
                    "plan_name": plan.name,
                    "base_price": plan.base_price,
                    "base_quantity": plan.base_quantity,
                    "price_per_additional": plan.price_per_additional,
                    "monthly_quota": plan.monthly_quota,
                    "season_start": plan.season_start,
                    "season_end": plan.season_end,
                    "additional_units": enrollment.additional_units,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist plan enrollment")
            return _row_to_enrollment(row)

    def insert_request(self, request: BookingRequest) -> BookingRequest:
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    """
                    INSERT INTO pump_out_request (
                        id,
                        subscriber_id,
                        week_start_date,
                        status,
                        payment_status,
                        is_additional_unit,
                        owner_notes,
                        created_at,
                        updated_at
                    )
                    VALUES (%(id)s, %(subscriber_id)s, %(week_start_date)s, %(status)s,
                            %(payment_status)s, %(is_additional_unit)s, %(owner_notes)s,
                            %(created_at)s, %(updated_at)s)
                    RETURNING *
                    """,
                    {
                        "id": request.id,
                        "subscriber_id": request.subscriber_id,
                        "week_start_date": request.week_start_date,
                        "status": request.status.value,
                        "payment_status": request.payment_status.value,
                        "is_additional_unit": request.is_additional_unit,
                        "owner_notes": request.owner_notes,
                        "created_at": request.created_at,
                        "updated_at": request.updated_at,
                    },
                )
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as exc:
            raise BookingRejected(
                "week_already_booked",
                "You already have a pump-out request for this week.",
                detail={"week_start_date": request.week_start_date.isoformat()},
            ) from exc
        if not row:
            raise RuntimeError("Failed to persist booking request")
        return _row_to_request(row)

    def get_request(self, request_id: str) -> Optional[BookingRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM pump_out_request
                WHERE id = %s
                LIMIT 1
                """,
                (request_id,),
            )
            row = cursor.fetchone()
            return _row_to_request(row) if row else None

    def list_requests(
        self,
        subscriber_id: str,
        *,
        created_from: Optional[date] = None,
        created_to: Optional[date] = None,
    ) -> List[BookingRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM pump_out_request
                WHERE subscriber_id = %(subscriber_id)s
                  AND (%(created_from)s::date IS NULL OR created_at::date >= %(created_from)s::date)
                  AND (%(created_to)s::date IS NULL OR created_at::date <= %(created_to)s::date)
                ORDER BY created_at ASC
                """,
                {
                    "subscriber_id": subscriber_id,
                    "created_from": created_from,
                    "created_to": created_to,
                },
            )
            rows = cursor.fetchall() or []
            return [_row_to_request(row) for row in rows]

    def list_requests_for_week(self, week_start_date: date) -> List[BookingRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM pump_out_request
                WHERE week_start_date = %s
                ORDER BY created_at ASC
                """,
                (week_start_date,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_request(row) for row in rows]

    def save_state(
        self,
        request_id: str,
        *,
        status: RequestStatus,
        payment_status: PaymentStatus,
    ) -> Optional[BookingRequest]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE pump_out_request
                SET status = %s,
                    payment_status = %s,
                    updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (status.value, payment_status.value, request_id),
            )
            row = cursor.fetchone()
            return _row_to_request(row) if row else None

    def append(self, record: TransitionRecord) -> TransitionRecord:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO pump_out_log (
                    request_id,
                    change_timestamp,
                    prev_status,
                    new_status,
                    prev_payment_status,
                    new_payment_status,
                    event,
                    ledger_effect
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    record.request_id,
                    record.timestamp,
                    record.previous_status.value if record.previous_status else None,
                    record.new_status.value,
                    record.previous_payment_status.value if record.previous_payment_status else None,
                    record.new_payment_status.value,
                    record.event.value if record.event else None,
                    record.ledger_effect.value,
                ),
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to append transition record")
            return _row_to_record(row)

    def list_for_request(self, request_id: str) -> List[TransitionRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM pump_out_log
                WHERE request_id = %s
                ORDER BY change_timestamp ASC, id ASC
                """,
                (request_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_record(row) for row in rows]


__all__ = ["PostgresBookingRepository", "SCHEMA_SQL", "managed_connection"]
