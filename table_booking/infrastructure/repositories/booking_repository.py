# table_booking/infrastructure/repositories/booking_repository.py

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from table_booking.domain.state_machine import BookingStatus
from table_booking.infrastructure.db.models import Booking


class BookingRepository:
    """
    Reservation ledger. Rows are appended and their status moves forward;
    nothing is ever deleted.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
        for_update: bool = False,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def list_bookings(
        self,
        status: BookingStatus | None = None,
        user_id: str | None = None,
        event_id: str | None = None,
    ) -> list[Booking]:

        stmt = select(Booking)
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        if event_id is not None:
            stmt = stmt.where(Booking.event_id == event_id)

        stmt = stmt.order_by(Booking.created_at, Booking.id)
        return list(self.db.execute(stmt).scalars().all())

    def list_expired(
        self,
        now: datetime,
        event_id: str | None = None,
    ) -> list[Booking]:

        stmt = (
            select(Booking)
            .where(Booking.status == BookingStatus.RESERVED)
            .where(Booking.expires_at < now)
        )
        if event_id is not None:
            stmt = stmt.where(Booking.event_id == event_id).with_for_update()

        stmt = stmt.order_by(Booking.expires_at, Booking.id)
        return list(self.db.execute(stmt).scalars().all())

    def append(self, booking: Booking) -> Booking:
        self.db.add(booking)
        return booking

    def update_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        updated_at: datetime | None = None,
    ) -> Booking | None:

        booking = self.get_by_id(booking_id)
        if booking is None:
            return None

        booking.status = new_status
        if updated_at is not None:
            booking.updated_at = updated_at
        return booking
