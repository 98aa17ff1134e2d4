# table_booking/infrastructure/repositories/seat_repository.py

from datetime import datetime
from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from table_booking.domain.state_machine import SeatStatus
from table_booking.infrastructure.db.models import Seat


class SeatRepository:

    def __init__(self, db: Session):
        self.db = db

    def find_seat(self, event_id: str, seat_id: str) -> Seat | None:
        return self.db.get(Seat, (event_id, seat_id))

    def list_seats(self, event_id: str) -> list[Seat]:
        stmt = (
            select(Seat)
            .where(Seat.event_id == event_id)
            .order_by(Seat.table_id, Seat.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def lock_for_update(
        self,
        event_id: str,
        seat_ids: Iterable[str],
    ) -> list[Seat]:
        """
        SELECT ... FOR UPDATE, always in seat id order so two
        transactions locking overlapping seat sets cannot deadlock.
        Unknown ids are simply absent from the result.
        """

        stmt = (
            select(Seat)
            .where(Seat.event_id == event_id)
            .where(Seat.id.in_(sorted(set(seat_ids))))
            .order_by(Seat.id)
            .with_for_update()
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_locked(self, event_id: str) -> list[Seat]:
        stmt = (
            select(Seat)
            .where(Seat.event_id == event_id)
            .where(Seat.status == SeatStatus.LOCKED)
            .order_by(Seat.id)
            .with_for_update()
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_stale_locks(self, cutoff: datetime) -> list[Seat]:
        """Locked seats whose lock was taken before ``cutoff``, across all events."""

        stmt = (
            select(Seat)
            .where(Seat.status == SeatStatus.LOCKED)
            .where(or_(Seat.locked_at.is_(None), Seat.locked_at < cutoff))
            .order_by(Seat.event_id, Seat.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_held_by(self, event_id: str, booking_id: str) -> list[Seat]:
        stmt = (
            select(Seat)
            .where(Seat.event_id == event_id)
            .where(Seat.booking_id == booking_id)
            .order_by(Seat.id)
            .with_for_update()
        )
        return list(self.db.execute(stmt).scalars().all())

    def add_seat(
        self,
        event_id: str,
        table_id: str,
        seat_id: str,
        price: int,
        row: str = "",
        number: int = 0,
    ) -> Seat:
        seat = Seat(
            event_id=event_id,
            table_id=table_id,
            id=seat_id,
            row=row,
            number=number,
            price=price,
            status=SeatStatus.FREE,
        )
        self.db.add(seat)
        return seat

    def update_price(self, event_id: str, seat_id: str, price: int) -> Seat | None:
        seat = self.find_seat(event_id, seat_id)
        if seat is None:
            return None

        seat.price = price
        return seat
