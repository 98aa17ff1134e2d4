# table_booking/api/routes/routes.py

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from table_booking.api.deps import (
    get_current_admin,
    get_current_principal,
    get_event_service,
    get_reservation_engine,
)
from table_booking.api.schemas.schemas import (
    BookingEnvelope,
    BookingRequest,
    BookingResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    ReservationResponse,
    SeatCreate,
    SeatPriceUpdate,
    SeatResponse,
    TableCreate,
    TableResponse,
)
from table_booking.application.event_service import EventService, SeatDraft, TableDraft
from table_booking.application.reservation_engine import ReservationEngine
from table_booking.domain.exceptions import (
    BookingExpiredError,
    EventInUseError,
    ForbiddenError,
    InvalidRequestError,
    InvalidStateTransitionError,
    NotFoundError,
    SeatConflictError,
    TableBookingError,
    UnauthorizedError,
)
from table_booking.domain.principal import Principal
from table_booking.domain.state_machine import BookingStatus


router = APIRouter()

_STATUS_BY_ERROR: dict[type[TableBookingError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    SeatConflictError: status.HTTP_409_CONFLICT,
    InvalidStateTransitionError: status.HTTP_400_BAD_REQUEST,
    EventInUseError: status.HTTP_409_CONFLICT,
    BookingExpiredError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


def _http_error(exc: TableBookingError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(
        status_code=status_code,
        detail={"error": exc.kind, "message": str(exc)},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": InvalidRequestError.kind,
                "message": "Request body or parameters are malformed",
                "fields": jsonable_encoder(exc.errors()),
            }
        },
    )


def _seat_drafts(seats: list[SeatCreate]) -> list[SeatDraft]:
    return [
        SeatDraft(id=seat.id, price=seat.price, row=seat.row, number=seat.number)
        for seat in seats
    ]


def _table_draft(table: TableCreate) -> TableDraft:
    return TableDraft(id=table.id, label=table.label, seats=_seat_drafts(table.seats))


@router.get("/health")
def health():
    return {"message": "Table Booking Engine is running"}


# -----------------------------
# Catalog
# -----------------------------
@router.get("/events", response_model=list[EventResponse])
def list_events(events: EventService = Depends(get_event_service)):
    return [EventResponse.model_validate(event) for event in events.list_events()]


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: str, events: EventService = Depends(get_event_service)):
    try:
        event = events.get_event(event_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return EventResponse.model_validate(event)


# -----------------------------
# Bookings
# -----------------------------
@router.post(
    "/bookings",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    request: BookingRequest,
    principal: Principal = Depends(get_current_principal),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        reservation = engine.reserve_seats(
            principal=principal,
            event_id=request.event_id,
            seat_ids=request.seat_ids,
        )
    except TableBookingError as exc:
        raise _http_error(exc) from exc

    return ReservationResponse.model_validate(reservation)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        booking = engine.get_booking(principal, booking_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return BookingResponse.model_validate(booking)


@router.get("/me/bookings", response_model=list[BookingResponse])
def my_bookings(
    principal: Principal = Depends(get_current_principal),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """Reservations awaiting payment that have not expired yet."""
    mine = engine.list_mine(principal)
    return [BookingResponse.model_validate(b) for b in mine.active]


@router.get("/me/tickets", response_model=list[BookingResponse])
def my_tickets(
    principal: Principal = Depends(get_current_principal),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """Confirmed (paid) bookings."""
    mine = engine.list_mine(principal)
    return [BookingResponse.model_validate(b) for b in mine.confirmed]


# -----------------------------
# Admin: bookings
# -----------------------------
@router.get("/admin/bookings", response_model=list[BookingResponse])
def admin_list_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    admin: Principal = Depends(get_current_admin),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        bookings = engine.list_bookings(admin, status=status_filter)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return [BookingResponse.model_validate(b) for b in bookings]


@router.post("/admin/bookings/{booking_id}/confirm", response_model=BookingEnvelope)
def admin_confirm_booking(
    booking_id: str,
    admin: Principal = Depends(get_current_admin),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        booking = engine.confirm_booking(admin, booking_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return BookingEnvelope(booking=BookingResponse.model_validate(booking))


@router.post("/admin/bookings/{booking_id}/reject", response_model=BookingEnvelope)
def admin_reject_booking(
    booking_id: str,
    admin: Principal = Depends(get_current_admin),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    try:
        booking = engine.reject_booking(admin, booking_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return BookingEnvelope(booking=BookingResponse.model_validate(booking))


# -----------------------------
# Admin: events and seats
# -----------------------------
@router.post(
    "/admin/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
)
def admin_create_event(
    request: EventCreate,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        event = events.create_event(
            admin,
            event_id=request.id,
            title=request.title,
            description=request.description,
            date=request.date,
            image_url=request.image_url,
            payment_phone=request.payment_phone,
            max_seats_per_booking=request.max_seats_per_booking,
            tables=[_table_draft(table) for table in request.tables],
        )
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return EventResponse.model_validate(event)


@router.put("/admin/events/{event_id}", response_model=EventResponse)
def admin_update_event(
    event_id: str,
    request: EventUpdate,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        event = events.update_event(admin, event_id, **changes)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return EventResponse.model_validate(event)


@router.delete("/admin/events/{event_id}")
def admin_delete_event(
    event_id: str,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        events.delete_event(admin, event_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return {"ok": True}


@router.post(
    "/admin/events/{event_id}/tables",
    response_model=TableResponse,
    status_code=status.HTTP_201_CREATED,
)
def admin_add_table(
    event_id: str,
    request: TableCreate,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        table = events.add_table(admin, event_id, _table_draft(request))
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return TableResponse.model_validate(table)


@router.get("/admin/events/{event_id}/seats", response_model=list[SeatResponse])
def admin_list_seats(
    event_id: str,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        seats = events.list_seats(admin, event_id)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return [SeatResponse.model_validate(seat) for seat in seats]


@router.post(
    "/admin/events/{event_id}/tables/{table_id}/seats",
    response_model=list[SeatResponse],
    status_code=status.HTTP_201_CREATED,
)
def admin_add_seats(
    event_id: str,
    table_id: str,
    request: list[SeatCreate],
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        seats = events.add_seats(admin, event_id, table_id, _seat_drafts(request))
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return [SeatResponse.model_validate(seat) for seat in seats]


@router.patch("/admin/events/{event_id}/seats/{seat_id}", response_model=SeatResponse)
def admin_update_seat_price(
    event_id: str,
    seat_id: str,
    request: SeatPriceUpdate,
    admin: Principal = Depends(get_current_admin),
    events: EventService = Depends(get_event_service),
):
    try:
        seat = events.update_seat_price(admin, event_id, seat_id, request.price)
    except TableBookingError as exc:
        raise _http_error(exc) from exc
    return SeatResponse.model_validate(seat)
