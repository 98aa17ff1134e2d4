# table_booking/api/schemas/schemas.py

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from table_booking.domain.state_machine import BookingStatus, CancelReason, SeatStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -----------------------------
# Catalog
# -----------------------------
class SeatResponse(CamelModel):
    id: str
    table_id: str
    row: str
    number: int
    price: int
    status: SeatStatus
    locked_at: datetime | None = None
    booked_by: str | None = None


class TableResponse(CamelModel):
    id: str
    label: str
    seats: list[SeatResponse]


class EventResponse(CamelModel):
    id: str
    title: str
    description: str
    date: str
    image_url: str
    payment_phone: str
    max_seats_per_booking: int
    tables: list[TableResponse]


class SeatCreate(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    price: int = Field(ge=0)
    row: str = ""
    number: int = 0


class TableCreate(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    label: str = ""
    seats: list[SeatCreate] = Field(default_factory=list)


class EventCreate(CamelModel):
    id: str | None = Field(default=None, max_length=64)
    title: str = Field(min_length=1)
    description: str = ""
    date: str
    image_url: str = ""
    payment_phone: str = ""
    max_seats_per_booking: int = Field(default=4, ge=0)
    tables: list[TableCreate] = Field(default_factory=list)


class EventUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    date: str | None = None
    image_url: str | None = None
    payment_phone: str | None = None
    max_seats_per_booking: int | None = Field(default=None, ge=0)


class SeatPriceUpdate(CamelModel):
    price: int = Field(ge=0)


# -----------------------------
# Bookings
# -----------------------------
class BookingRequest(CamelModel):
    event_id: str
    seat_ids: list[str]


class BookingResponse(CamelModel):
    id: str
    event_id: str
    user_id: str
    seat_ids: list[str]
    total_price: int
    status: BookingStatus
    cancel_reason: CancelReason | None = None
    created_at: datetime
    expires_at: datetime


class ReservationResponse(CamelModel):
    booking: BookingResponse
    payment_instructions: str


class BookingEnvelope(CamelModel):
    booking: BookingResponse
