# table_booking/infrastructure/repositories/event_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from table_booking.infrastructure.db.models import Event, EventTable


class EventRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: str) -> Event | None:
        return self.db.get(Event, event_id)

    def list_events(self) -> list[Event]:
        stmt = select(Event).order_by(Event.date, Event.title)
        return list(self.db.execute(stmt).scalars().all())

    def get_table(self, event_id: str, table_id: str) -> EventTable | None:
        return self.db.get(EventTable, (table_id, event_id))

    def add(self, event: Event) -> Event:
        self.db.add(event)
        return event

    def delete(self, event: Event) -> None:
        self.db.delete(event)
