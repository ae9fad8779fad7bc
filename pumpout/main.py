"""FastAPI application serving the pump-out booking engine."""
from __future__ import annotations

import logging
from typing import Optional

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel

from pumpout import app_context
from pumpout.app.booking import ActorRole
from pumpout.app.config import load_booking_config
from pumpout.app.lifecycle.repository import PostgresBookingRepository
from pumpout.app.routes.booking import router as booking_router


load_dotenv()

CONFIG = load_booking_config()

logging.basicConfig(
    level=getattr(logging, CONFIG.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("booking")


class CurrentUser(BaseModel):
    id: str
    role: ActorRole = ActorRole.MEMBER


def get_conn():
    return psycopg2.connect(**CONFIG.db_config)


def get_current_user(user_id: Optional[str] = None, role: Optional[str] = None) -> CurrentUser:
    # Sessions are issued upstream; the gateway forwards the resolved identity as headers.
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        actor_role = ActorRole(role) if role else ActorRole.MEMBER
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown role") from exc
    return CurrentUser(id=user_id, role=actor_role)


app_context.configure(
    get_conn=get_conn,
    get_current_user=get_current_user,
)

app = FastAPI(title="Pump-Out Booking API")

app.include_router(booking_router)


@app.on_event("startup")
def ensure_schema() -> None:
    PostgresBookingRepository().ensure_schema()
    logger.info(
        "Booking engine ready: season %02d-%02d..%02d-%02d, weekly capacity %s",
        CONFIG.season_start_month,
        CONFIG.season_start_day,
        CONFIG.season_end_month,
        CONFIG.season_end_day,
        CONFIG.weekly_capacity,
    )
