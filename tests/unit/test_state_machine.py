# tests/unit/test_state_machine.py

import pytest

from table_booking.domain.state_machine import BookingStateMachine, BookingStatus, SeatStatus
from table_booking.domain.exceptions import InvalidStateTransitionError


# ---------------------
# VALID TRANSITIONS
# ---------------------

def test_valid_transitions_from_reserved():
    assert BookingStateMachine.can_transition(
        BookingStatus.RESERVED,
        BookingStatus.CONFIRMED,
    )

    assert BookingStateMachine.can_transition(
        BookingStatus.RESERVED,
        BookingStatus.CANCELLED,
    )


def test_allowed_transitions_from_reserved():
    assert BookingStateMachine.get_allowed_transitions(BookingStatus.RESERVED) == {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }


# ---------------------
# INVALID TRANSITIONS
# ---------------------

def test_terminal_state_confirmed():
    assert BookingStateMachine.is_terminal(BookingStatus.CONFIRMED)

    with pytest.raises(InvalidStateTransitionError):
        BookingStateMachine.validate_transition(
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        )


def test_terminal_state_cancelled():
    assert BookingStateMachine.is_terminal(BookingStatus.CANCELLED)

    with pytest.raises(InvalidStateTransitionError) as exc_info:
        BookingStateMachine.validate_transition(
            BookingStatus.CANCELLED,
            BookingStatus.CONFIRMED,
        )

    assert exc_info.value.from_state == "cancelled"
    assert exc_info.value.to_state == "confirmed"


def test_cannot_confirm_twice():
    with pytest.raises(InvalidStateTransitionError):
        BookingStateMachine.validate_transition(
            BookingStatus.CONFIRMED,
            BookingStatus.CONFIRMED,
        )


def test_reserved_is_not_terminal():
    assert not BookingStateMachine.is_terminal(BookingStatus.RESERVED)


# ---------------------
# SEAT STATUS
# ---------------------

@pytest.mark.parametrize(
    "booking_status, seat_status",
    [
        (BookingStatus.RESERVED, SeatStatus.LOCKED),
        (BookingStatus.CONFIRMED, SeatStatus.SOLD),
        (BookingStatus.CANCELLED, SeatStatus.FREE),
    ],
)
def test_seat_status_for_booking(booking_status, seat_status):
    assert BookingStateMachine.seat_status_for(booking_status) is seat_status


def test_invalid_type_guard():
    with pytest.raises(TypeError):
        BookingStateMachine.validate_transition(
            "reserved",  # invalid type
            BookingStatus.CONFIRMED,
        )
