# tests/support.py

from datetime import datetime, timedelta

from table_booking.application.event_service import EventService, SeatDraft, TableDraft
from table_booking.domain.principal import Principal, Role
from table_booking.domain.state_machine import SeatStatus
from table_booking.infrastructure.db.models import Seat
from table_booking.infrastructure.db.session import session_scope
from table_booking.infrastructure.repositories.booking_repository import BookingRepository
from table_booking.infrastructure.repositories.seat_repository import SeatRepository


TEST_JWT_SECRET = "test-secret"

ADMIN = Principal(id="admin", role=Role.ADMIN)
USER_1 = Principal(id="u1")
USER_2 = Principal(id="u2")


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def create_gala_event(event_service: EventService, event_id: str = "evt-1"):
    return event_service.create_event(
        ADMIN,
        event_id=event_id,
        title="Gala Dinner",
        date="2026-03-10",
        payment_phone="79991234567",
        max_seats_per_booking=4,
        tables=[
            TableDraft(
                id="T1",
                label="Stage side",
                seats=[
                    SeatDraft(id="A1", price=100, row="A", number=1),
                    SeatDraft(id="A2", price=150, row="A", number=2),
                    SeatDraft(id="A3", price=120, row="A", number=3),
                ],
            ),
            TableDraft(
                id="T2",
                label="Hall",
                seats=[
                    SeatDraft(id=f"B{number}", price=80, row="B", number=number)
                    for number in range(1, 6)
                ],
            ),
        ],
    )


def load_seat(session_factory, seat_id: str, event_id: str = "evt-1") -> Seat:
    with session_scope(session_factory) as db:
        return SeatRepository(db).find_seat(event_id, seat_id)


def seat_statuses(session_factory, event_id: str = "evt-1") -> dict[str, SeatStatus]:
    with session_scope(session_factory) as db:
        return {seat.id: seat.status for seat in SeatRepository(db).list_seats(event_id)}


def load_booking(session_factory, booking_id: str):
    with session_scope(session_factory) as db:
        return BookingRepository(db).get_by_id(booking_id)
