# table_booking/domain/exceptions.py

class TableBookingError(Exception):
    """
    Base exception for all domain-level errors
    inside the Table Booking Engine.

    Every subclass carries a stable ``kind`` that the API reports
    as the error code.
    """

    kind = "error"


class NotFoundError(TableBookingError):
    """Raised when an event, seat or booking does not exist."""

    kind = "not_found"


class InvalidRequestError(TableBookingError):
    """Raised for empty, malformed or over-limit input."""

    kind = "invalid_request"


class SeatConflictError(TableBookingError):
    """
    Raised when a requested seat is not free.
    """

    kind = "conflict"

    def __init__(self, event_id: str, seat_id: str, seat_status: str):
        self.event_id = event_id
        self.seat_id = seat_id
        self.seat_status = seat_status

        super().__init__(
            f"Seat {seat_id} of event {event_id} is not available "
            f"(status: {seat_status})"
        )


class InvalidStateTransitionError(TableBookingError):
    """
    Raised when an illegal booking state transition is attempted.
    """

    kind = "invalid_state"

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class EventInUseError(TableBookingError):
    """Raised when an event cannot be removed while reservations are pending."""

    kind = "invalid_state"


class BookingExpiredError(TableBookingError):
    """Raised when a reservation's seat lock has already lapsed."""

    kind = "expired"

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} has expired")


class UnauthorizedError(TableBookingError):
    """Raised when a credential is missing or cannot be verified."""

    kind = "unauthorized"


class ForbiddenError(TableBookingError):
    """Raised when the caller's role does not allow the operation."""

    kind = "forbidden"
