# table_booking/infrastructure/db/models.py

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Enum,
    Text,
    CheckConstraint,
    ForeignKey,
    ForeignKeyConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from table_booking.infrastructure.db.session import Base
from table_booking.domain.state_machine import BookingStatus, CancelReason, SeatStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column.
    Backends that drop tzinfo (SQLite) hand values back as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[str] = mapped_column(String(32), nullable=False)
    image_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    payment_phone: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    max_seats_per_booking: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )

    tables: Mapped[list["EventTable"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventTable.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "max_seats_per_booking >= 0",
            name="ck_event_max_seats_nonnegative",
        ),
    )


class EventTable(Base):
    __tablename__ = "event_tables"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("events.id", ondelete="CASCADE"),
        primary_key=True,
    )
    label: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    event: Mapped[Event] = relationship(back_populates="tables")
    seats: Mapped[list["Seat"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        order_by="Seat.id",
        lazy="selectin",
    )


class Seat(Base):
    """
    A seat at an event table.
    Seat ids are unique within their event.
    """

    __tablename__ = "seats"

    event_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("events.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    table_id: Mapped[str] = mapped_column(String(64), nullable=False)
    row: Mapped[str] = mapped_column("row_label", String(16), nullable=False, default="")
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[SeatStatus] = mapped_column(
        Enum(SeatStatus, name="seat_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SeatStatus.FREE,
    )
    locked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    booked_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    booking_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    table: Mapped[EventTable] = relationship(back_populates="seats")

    __table_args__ = (
        ForeignKeyConstraint(
            ["table_id", "event_id"],
            ["event_tables.id", "event_tables.event_id"],
            ondelete="CASCADE",
        ),
        CheckConstraint("price >= 0", name="ck_seat_price_nonnegative"),
    )


class Booking(Base):
    """
    Booking table reflecting domain state.
    Domain controls transitions.
    DB stores current state safely.

    Bookings are never deleted; cancelled rows stay as an audit trail.
    """

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    event_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BookingStatus.RESERVED,
    )
    cancel_reason: Mapped[CancelReason | None] = mapped_column(
        Enum(CancelReason, name="cancel_reason", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    seats: Mapped[list["BookingSeat"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingSeat.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_booking_total_nonnegative"),
    )

    @property
    def seat_ids(self) -> list[str]:
        return [item.seat_id for item in self.seats]


class BookingSeat(Base):
    __tablename__ = "booking_seats"

    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        primary_key=True,
    )
    seat_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    booking: Mapped[Booking] = relationship(back_populates="seats")

    __table_args__ = (
        UniqueConstraint("booking_id", "position", name="uq_booking_seat_position"),
    )
