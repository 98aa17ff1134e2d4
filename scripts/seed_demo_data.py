# scripts/seed_demo_data.py

from datetime import datetime, timedelta, timezone

from table_booking.application.event_service import EventService, SeatDraft, TableDraft
from table_booking.domain.principal import Principal, Role
from table_booking.infrastructure.db.models import Base
from table_booking.infrastructure.db.session import SessionLocal, engine
from table_booking.infrastructure.security import create_access_token


SEED_ADMIN = Principal(id="admin", role=Role.ADMIN)


def _date(days_from_now: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days_from_now)).date().isoformat()


def _table(table_id: str, label: str, price: int, seat_count: int) -> TableDraft:
    return TableDraft(
        id=table_id,
        label=label,
        seats=[
            SeatDraft(id=f"{table_id}{number}", price=price, row=table_id, number=number)
            for number in range(1, seat_count + 1)
        ],
    )


def seed_events(events: EventService) -> None:
    event_defs = [
        {
            "event_id": "evt-1",
            "title": "Gala Dinner",
            "description": "An exclusive evening of fine dining and networking.",
            "date": _date(days_from_now=10),
            "image_url": "https://picsum.photos/800/600",
            "payment_phone": "79991234567",
            "max_seats_per_booking": 4,
            "tables": [
                _table("A", "Stage side", price=150, seat_count=6),
                _table("B", "Hall", price=100, seat_count=8),
            ],
        },
        {
            "event_id": "evt-2",
            "title": "Jazz Night",
            "description": "Live quartet, two sets.",
            "date": _date(days_from_now=17),
            "payment_phone": "79991234567",
            "max_seats_per_booking": 6,
            "tables": [
                _table("C", "Front", price=120, seat_count=4),
                _table("D", "Balcony", price=80, seat_count=4),
            ],
        },
    ]

    existing = {event.id for event in events.list_events()}
    for item in event_defs:
        if item["event_id"] in existing:
            continue
        events.create_event(SEED_ADMIN, **item)


def main() -> None:
    Base.metadata.create_all(bind=engine)
    seed_events(EventService(SessionLocal))

    print("Seed complete: Gala Dinner (evt-1) and Jazz Night (evt-2) added.")
    print("Admin token:", create_access_token("admin", Role.ADMIN))
    print("User token (u1):", create_access_token("u1", Role.USER))


if __name__ == "__main__":
    main()
