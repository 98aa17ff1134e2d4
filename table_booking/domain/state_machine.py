# table_booking/domain/state_machine.py

from enum import Enum
from typing import Dict, Set

from table_booking.domain.exceptions import InvalidStateTransitionError


class BookingStatus(str, Enum):
    RESERVED = "reserved"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class SeatStatus(str, Enum):
    FREE = "free"
    LOCKED = "locked"
    SOLD = "sold"


class CancelReason(str, Enum):
    EXPIRED = "expired"
    REJECTED = "rejected"


class BookingStateMachine:
    """
    Central lifecycle controller for booking transitions.
    Defines the legal state transitions.

    reserved -> confirmed (payment verified by an administrator)
    reserved -> cancelled (lock expired or administrator rejected)
    """

    _ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
        BookingStatus.RESERVED: {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: set(),
        BookingStatus.CANCELLED: set(),
    }

    # Seat status every seat of a booking must carry while the booking
    # sits in the given state.
    _SEAT_STATUS_FOR_BOOKING: Dict[BookingStatus, SeatStatus] = {
        BookingStatus.RESERVED: SeatStatus.LOCKED,
        BookingStatus.CONFIRMED: SeatStatus.SOLD,
        BookingStatus.CANCELLED: SeatStatus.FREE,
    }

    @classmethod
    def can_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> bool:
        """
        Returns True if transition is allowed.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status: BookingStatus) -> bool:
        """
        Returns True if the state is terminal (no further transitions allowed).
        """
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(
        cls, status: BookingStatus
    ) -> Set[BookingStatus]:
        cls._ensure_valid_status(status)
        return cls._ALLOWED_TRANSITIONS.get(status, set())

    @classmethod
    def seat_status_for(cls, status: BookingStatus) -> SeatStatus:
        """
        Returns the seat status implied by a booking in ``status``.
        """
        cls._ensure_valid_status(status)
        return cls._SEAT_STATUS_FOR_BOOKING[status]

    @staticmethod
    def _ensure_valid_status(status: BookingStatus) -> None:
        if not isinstance(status, BookingStatus):
            raise TypeError(
                f"Expected BookingStatus, got {type(status)}"
            )
