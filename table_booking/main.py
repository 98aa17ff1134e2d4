# table_booking/main.py

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from table_booking.api.routes.routes import router, validation_error_handler
from table_booking.application.event_service import EventService
from table_booking.application.expiry_sweeper import ExpirySweeper
from table_booking.application.locks import EventLockRegistry
from table_booking.application.reservation_engine import ReservationEngine
from table_booking.infrastructure.config import (
    DB_CONNECT_MAX_RETRIES,
    DB_CONNECT_RETRY_DELAY,
    EXPIRY_SWEEP_INTERVAL_SECONDS,
    LOG_LEVEL,
)
from table_booking.infrastructure.db.models import Base, utcnow
from table_booking.infrastructure.db.session import SessionLocal
from table_booking.infrastructure.notifications import LoggingNotificationSink, NotificationSink
from table_booking.infrastructure.security import JWTPrincipalResolver

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _wait_for_db(session_factory: sessionmaker) -> None:
    # Handles the common case where API starts before Postgres is ready.
    bind = session_factory.kw["bind"]

    for attempt in range(1, DB_CONNECT_MAX_RETRIES + 1):
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is reachable.")
            return
        except OperationalError:
            if attempt == DB_CONNECT_MAX_RETRIES:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL and Postgres status.",
                    DB_CONNECT_MAX_RETRIES,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                DB_CONNECT_MAX_RETRIES,
                DB_CONNECT_RETRY_DELAY,
            )
            time.sleep(DB_CONNECT_RETRY_DELAY)


def create_app(
    session_factory: sessionmaker = SessionLocal,
    notifier: NotificationSink | None = None,
    clock: Callable[[], datetime] = utcnow,
    principal_resolver: JWTPrincipalResolver | None = None,
    sweep_interval_seconds: float = EXPIRY_SWEEP_INTERVAL_SECONDS,
    start_sweeper: bool = True,
) -> FastAPI:
    locks = EventLockRegistry()
    reservation_engine = ReservationEngine(
        session_factory=session_factory,
        notifier=notifier or LoggingNotificationSink(),
        locks=locks,
        clock=clock,
    )
    sweeper = ExpirySweeper(reservation_engine, interval_seconds=sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Blocking retries and DDL stay off the event loop.
        await asyncio.to_thread(_wait_for_db, session_factory)
        await asyncio.to_thread(Base.metadata.create_all, bind=session_factory.kw["bind"])
        if start_sweeper:
            sweeper.start()
        yield
        await asyncio.to_thread(sweeper.stop)

    app = FastAPI(title="Table Booking Engine", lifespan=lifespan)
    app.state.reservation_engine = reservation_engine
    app.state.event_service = EventService(session_factory, locks=locks)
    app.state.principal_resolver = principal_resolver or JWTPrincipalResolver()
    app.state.expiry_sweeper = sweeper

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


configure_logging()
app = create_app()
