# table_booking/application/event_service.py

import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import uuid4

from sqlalchemy.orm import sessionmaker

from table_booking.application.locks import EventLockRegistry
from table_booking.domain.exceptions import (
    EventInUseError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from table_booking.domain.principal import Principal
from table_booking.domain.state_machine import BookingStatus, SeatStatus
from table_booking.infrastructure.db.models import Event, EventTable, Seat, utcnow
from table_booking.infrastructure.db.session import session_scope
from table_booking.infrastructure.repositories.booking_repository import BookingRepository
from table_booking.infrastructure.repositories.event_repository import EventRepository
from table_booking.infrastructure.repositories.seat_repository import SeatRepository


logger = logging.getLogger(__name__)

_EVENT_FIELDS = (
    "title",
    "description",
    "date",
    "image_url",
    "payment_phone",
    "max_seats_per_booking",
)


@dataclass
class SeatDraft:
    id: str
    price: int
    row: str = ""
    number: int = 0


@dataclass
class TableDraft:
    id: str
    label: str = ""
    seats: list[SeatDraft] = field(default_factory=list)


class EventService:
    """Catalog reads for everyone, catalog changes for administrators."""

    def __init__(
        self,
        session_factory: sessionmaker,
        locks: EventLockRegistry | None = None,
    ):
        self.session_factory = session_factory
        self.locks = locks or EventLockRegistry()

    def list_events(self) -> list[Event]:
        with session_scope(self.session_factory) as db:
            return EventRepository(db).list_events()

    def get_event(self, event_id: str) -> Event:
        with session_scope(self.session_factory) as db:
            event = EventRepository(db).get_by_id(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        return event

    def create_event(
        self,
        principal: Principal,
        title: str,
        date: str,
        description: str = "",
        image_url: str = "",
        payment_phone: str = "",
        max_seats_per_booking: int = 0,
        tables: Sequence[TableDraft] = (),
        event_id: str | None = None,
    ) -> Event:
        self._require_admin(principal)
        if max_seats_per_booking < 0:
            raise InvalidRequestError("max_seats_per_booking must not be negative")
        self._check_unique([t.id for t in tables], "Table")
        self._check_unique([s.id for t in tables for s in t.seats], "Seat")

        now = utcnow()
        event = Event(
            id=event_id or str(uuid4()),
            title=title,
            description=description,
            date=date,
            image_url=image_url,
            payment_phone=payment_phone,
            max_seats_per_booking=max_seats_per_booking,
            created_at=now,
            updated_at=now,
        )
        event.tables = [
            self._build_table(event.id, draft, position)
            for position, draft in enumerate(tables)
        ]

        with session_scope(self.session_factory) as db:
            repo = EventRepository(db)
            if repo.get_by_id(event.id) is not None:
                raise InvalidRequestError(f"Event {event.id} already exists")
            repo.add(event)

        logger.info("Event %s created by %s", event.id, principal.id)
        return event

    def update_event(self, principal: Principal, event_id: str, **changes) -> Event:
        """Updates descriptive fields; tables and seats are managed separately."""
        self._require_admin(principal)
        unknown = set(changes) - set(_EVENT_FIELDS)
        if unknown:
            raise InvalidRequestError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        if changes.get("max_seats_per_booking", 0) < 0:
            raise InvalidRequestError("max_seats_per_booking must not be negative")

        with session_scope(self.session_factory) as db:
            event = EventRepository(db).get_by_id(event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            for name, value in changes.items():
                setattr(event, name, value)
            event.updated_at = utcnow()

        return event

    def delete_event(self, principal: Principal, event_id: str) -> None:
        self._require_admin(principal)

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                repo = EventRepository(db)
                event = repo.get_by_id(event_id)
                if event is None:
                    raise NotFoundError(f"Event {event_id} not found")

                pending = BookingRepository(db).list_bookings(
                    status=BookingStatus.RESERVED,
                    event_id=event_id,
                )
                if pending:
                    raise EventInUseError(
                        f"Event {event_id} has {len(pending)} reservation(s) awaiting payment"
                    )
                repo.delete(event)

        logger.info("Event %s deleted by %s", event_id, principal.id)

    def add_table(
        self,
        principal: Principal,
        event_id: str,
        draft: TableDraft,
    ) -> EventTable:
        self._require_admin(principal)
        self._check_unique([s.id for s in draft.seats], "Seat")

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                events = EventRepository(db)
                event = events.get_by_id(event_id)
                if event is None:
                    raise NotFoundError(f"Event {event_id} not found")
                if events.get_table(event_id, draft.id) is not None:
                    raise InvalidRequestError(f"Table {draft.id} already exists")
                self._check_free_ids(SeatRepository(db), event_id, draft.seats)

                table = self._build_table(event_id, draft, len(event.tables))
                event.tables.append(table)
                event.updated_at = utcnow()

        return table

    def add_seats(
        self,
        principal: Principal,
        event_id: str,
        table_id: str,
        seats: Sequence[SeatDraft],
    ) -> list[Seat]:
        self._require_admin(principal)
        if not seats:
            raise InvalidRequestError("No seats given")
        self._check_unique([s.id for s in seats], "Seat")

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                table = EventRepository(db).get_table(event_id, table_id)
                if table is None:
                    raise NotFoundError(f"Table {table_id} not found in event {event_id}")
                seat_repo = SeatRepository(db)
                self._check_free_ids(seat_repo, event_id, seats)

                created = [
                    seat_repo.add_seat(
                        event_id=event_id,
                        table_id=table_id,
                        seat_id=draft.id,
                        price=draft.price,
                        row=draft.row,
                        number=draft.number,
                    )
                    for draft in seats
                ]

        return created

    def update_seat_price(
        self,
        principal: Principal,
        event_id: str,
        seat_id: str,
        price: int,
    ) -> Seat:
        """
        Changes the list price of a seat. Bookings keep the price they
        were reserved at.
        """
        self._require_admin(principal)
        if price < 0:
            raise InvalidRequestError("Price must not be negative")

        with session_scope(self.session_factory) as db:
            seat = SeatRepository(db).update_price(event_id, seat_id, price)
            if seat is None:
                raise NotFoundError(f"Seat {seat_id} not found in event {event_id}")

        return seat

    def list_seats(self, principal: Principal, event_id: str) -> list[Seat]:
        self._require_admin(principal)
        with session_scope(self.session_factory) as db:
            if EventRepository(db).get_by_id(event_id) is None:
                raise NotFoundError(f"Event {event_id} not found")
            return SeatRepository(db).list_seats(event_id)

    @staticmethod
    def _require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise ForbiddenError("Administrator role required")

    @staticmethod
    def _check_unique(ids: list[str], kind: str) -> None:
        seen = set()
        for item in ids:
            if item in seen:
                raise InvalidRequestError(f"{kind} id {item} is repeated")
            seen.add(item)

    @staticmethod
    def _check_free_ids(seat_repo: SeatRepository, event_id: str, seats: Sequence[SeatDraft]) -> None:
        for draft in seats:
            if seat_repo.find_seat(event_id, draft.id) is not None:
                raise InvalidRequestError(f"Seat {draft.id} already exists in event {event_id}")

    @staticmethod
    def _build_table(event_id: str, draft: TableDraft, position: int) -> EventTable:
        for seat in draft.seats:
            if seat.price < 0:
                raise InvalidRequestError(f"Seat {seat.id} has a negative price")

        return EventTable(
            id=draft.id,
            event_id=event_id,
            label=draft.label,
            position=position,
            seats=[
                Seat(
                    event_id=event_id,
                    table_id=draft.id,
                    id=seat.id,
                    row=seat.row,
                    number=seat.number,
                    price=seat.price,
                    status=SeatStatus.FREE,
                )
                for seat in draft.seats
            ],
        )
