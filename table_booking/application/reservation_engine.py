# table_booking/application/reservation_engine.py

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from table_booking.application.locks import EventLockRegistry
from table_booking.domain.exceptions import (
    BookingExpiredError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    SeatConflictError,
)
from table_booking.domain.principal import Principal
from table_booking.domain.state_machine import (
    BookingStateMachine,
    BookingStatus,
    CancelReason,
    SeatStatus,
)
from table_booking.infrastructure.config import ADMIN_NOTIFY_IDS, SEAT_LOCK_MINUTES
from table_booking.infrastructure.db.models import Booking, BookingSeat, Event, Seat, utcnow
from table_booking.infrastructure.db.session import session_scope
from table_booking.infrastructure.notifications import LoggingNotificationSink, NotificationSink
from table_booking.infrastructure.repositories.booking_repository import BookingRepository
from table_booking.infrastructure.repositories.event_repository import EventRepository
from table_booking.infrastructure.repositories.seat_repository import SeatRepository


logger = logging.getLogger(__name__)

LOCK_DURATION = timedelta(minutes=SEAT_LOCK_MINUTES)


@dataclass(frozen=True)
class Reservation:
    booking: Booking
    payment_instructions: str


@dataclass(frozen=True)
class MyBookings:
    active: list[Booking]
    confirmed: list[Booking]


class ReservationEngine:
    """
    Owns every status change of seats and bookings.

    Each mutating operation takes the event's mutex, then reads, checks
    and writes inside a single transaction that is committed before the
    mutex is released. Notifications go out afterwards and never undo
    the state change.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        notifier: NotificationSink | None = None,
        locks: EventLockRegistry | None = None,
        clock: Callable[[], datetime] = utcnow,
        lock_duration: timedelta = LOCK_DURATION,
        admin_ids: Iterable[str] = ADMIN_NOTIFY_IDS,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or LoggingNotificationSink()
        self.locks = locks or EventLockRegistry()
        self.clock = clock
        self.lock_duration = lock_duration
        self.admin_ids = tuple(admin_ids)

    # -----------------------------
    # Reservations
    # -----------------------------
    def reserve_seats(
        self,
        principal: Principal,
        event_id: str,
        seat_ids: Sequence[str],
    ) -> Reservation:
        requested = list(seat_ids)

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                event = EventRepository(db).get_by_id(event_id)
                if event is None:
                    raise NotFoundError(f"Event {event_id} not found")

                self._validate_seat_request(event, requested)
                seats = self._claimable_seats(db, event_id, requested)

                now = self.clock()
                booking = Booking(
                    id=str(uuid4()),
                    event_id=event_id,
                    user_id=principal.id,
                    total_price=sum(seat.price for seat in seats),
                    status=BookingStatus.RESERVED,
                    created_at=now,
                    expires_at=now + self.lock_duration,
                    updated_at=now,
                    seats=[
                        BookingSeat(seat_id=seat.id, position=position, price=seat.price)
                        for position, seat in enumerate(seats)
                    ],
                )
                BookingRepository(db).append(booking)

                for seat in seats:
                    seat.status = BookingStateMachine.seat_status_for(BookingStatus.RESERVED)
                    seat.locked_at = now
                    seat.booked_by = principal.id
                    seat.booking_id = booking.id

                instructions = self._payment_instructions(event, booking)
                admin_message = (
                    f"User {principal.id} reserved seats {', '.join(booking.seat_ids)} "
                    f'for "{event.title}" totalling {booking.total_price}. '
                    f"Please check the payment."
                )

        logger.info(
            "Booking %s reserved. event_id=%s user_id=%s seats=%s total=%s",
            booking.id,
            event_id,
            principal.id,
            booking.seat_ids,
            booking.total_price,
        )
        self._notify(principal.id, instructions)
        for admin_id in self.admin_ids:
            self._notify(admin_id, admin_message)

        return Reservation(booking=booking, payment_instructions=instructions)

    def confirm_booking(self, principal: Principal, booking_id: str) -> Booking:
        self._require_admin(principal)
        event_id = self._event_id_of(booking_id)

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                booking = self._load_for_transition(db, booking_id, BookingStatus.CONFIRMED)

                now = self.clock()
                if now > booking.expires_at:
                    raise BookingExpiredError(booking_id)

                for seat in self._seats_of(db, booking):
                    seat.status = BookingStateMachine.seat_status_for(BookingStatus.CONFIRMED)
                    seat.locked_at = None
                    seat.booked_by = None

                BookingRepository(db).update_status(booking_id, BookingStatus.CONFIRMED, updated_at=now)

        logger.info("Booking %s confirmed by %s", booking_id, principal.id)
        self._notify(
            booking.user_id,
            "Payment confirmed. Your tickets will be sent to you shortly.",
        )
        return booking

    def reject_booking(self, principal: Principal, booking_id: str) -> Booking:
        self._require_admin(principal)
        event_id = self._event_id_of(booking_id)

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                booking = self._load_for_transition(db, booking_id, BookingStatus.CANCELLED)
                self._cancel(db, booking, CancelReason.REJECTED, self.clock())

        logger.info("Booking %s rejected by %s", booking_id, principal.id)
        self._notify(
            booking.user_id,
            f"Your booking {booking_id} was cancelled: the payment could not be confirmed.",
        )
        return booking

    # -----------------------------
    # Expiry
    # -----------------------------
    def expire_stale_reservations(self) -> int:
        """
        One sweep pass. Cancels every reserved booking whose lock has
        lapsed and frees its seats. Returns the number of bookings cancelled.

        Each event is handled in its own transaction; a failing event is
        logged, left untouched, and retried on the next pass.
        """
        now = self.clock()
        cutoff = now - self.lock_duration

        with session_scope(self.session_factory) as db:
            event_ids = {b.event_id for b in BookingRepository(db).list_expired(now)}
            event_ids.update(seat.event_id for seat in SeatRepository(db).list_stale_locks(cutoff))

        cancelled = 0
        for event_id in sorted(event_ids):
            try:
                expired = self._expire_event(event_id, now)
            except Exception:
                logger.exception(
                    "Expiry sweep failed for event %s; retrying on next pass",
                    event_id,
                )
                continue

            for booking in expired:
                self._notify(
                    booking.user_id,
                    f"Your reservation {booking.id} expired and the seats were released.",
                )
            cancelled += len(expired)

        if cancelled:
            logger.info("Expiry sweep cancelled %s booking(s)", cancelled)
        return cancelled

    def _expire_event(self, event_id: str, now: datetime) -> list[Booking]:
        cutoff = now - self.lock_duration

        with self.locks.hold(event_id):
            with session_scope(self.session_factory) as db:
                bookings = BookingRepository(db)
                expired = bookings.list_expired(now, event_id=event_id)
                for booking in expired:
                    self._cancel(db, booking, CancelReason.EXPIRED, now)
                db.flush()

                # Locks left behind without a live reservation.
                for seat in SeatRepository(db).list_locked(event_id):
                    if seat.locked_at is not None and seat.locked_at >= cutoff:
                        continue
                    holder = bookings.get_by_id(seat.booking_id) if seat.booking_id else None
                    if holder is None or holder.status is not BookingStatus.RESERVED:
                        logger.warning(
                            "Releasing orphaned lock on seat %s of event %s",
                            seat.id,
                            event_id,
                        )
                        self._release(seat)

        for booking in expired:
            logger.info("Booking %s expired at %s", booking.id, booking.expires_at.isoformat())
        return expired

    # -----------------------------
    # Queries
    # -----------------------------
    def list_mine(self, principal: Principal) -> MyBookings:
        now = self.clock()
        with session_scope(self.session_factory) as db:
            mine = BookingRepository(db).list_bookings(user_id=principal.id)

        return MyBookings(
            active=[
                b for b in mine
                if b.status is BookingStatus.RESERVED and now <= b.expires_at
            ],
            confirmed=[b for b in mine if b.status is BookingStatus.CONFIRMED],
        )

    def list_bookings(
        self,
        principal: Principal,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        self._require_admin(principal)
        with session_scope(self.session_factory) as db:
            return BookingRepository(db).list_bookings(status=status)

    def get_booking(self, principal: Principal, booking_id: str) -> Booking:
        with session_scope(self.session_factory) as db:
            booking = BookingRepository(db).get_by_id(booking_id)

        # Other users' bookings are reported as missing.
        if booking is None or not (principal.is_admin or booking.user_id == principal.id):
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    # -----------------------------
    # Helpers
    # -----------------------------
    @staticmethod
    def _require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise ForbiddenError("Administrator role required")

    @staticmethod
    def _validate_seat_request(event: Event, seat_ids: list[str]) -> None:
        if not seat_ids:
            raise InvalidRequestError("No seats selected")
        if len(set(seat_ids)) != len(seat_ids):
            raise InvalidRequestError("Seat ids must not repeat")
        cap = event.max_seats_per_booking
        if cap and len(seat_ids) > cap:
            raise InvalidRequestError(
                f"At most {cap} seats can be booked at once, got {len(seat_ids)}"
            )

    @staticmethod
    def _claimable_seats(db: Session, event_id: str, seat_ids: list[str]) -> list[Seat]:
        locked = {seat.id: seat for seat in SeatRepository(db).lock_for_update(event_id, seat_ids)}

        seats = []
        for seat_id in seat_ids:
            seat = locked.get(seat_id)
            if seat is None:
                raise NotFoundError(f"Seat {seat_id} not found in event {event_id}")
            if seat.status is not SeatStatus.FREE:
                logger.info(
                    "Seat %s of event %s unavailable (status=%s)",
                    seat_id,
                    event_id,
                    seat.status.value,
                )
                raise SeatConflictError(event_id, seat_id, seat.status.value)
            seats.append(seat)
        return seats

    def _event_id_of(self, booking_id: str) -> str:
        with session_scope(self.session_factory) as db:
            booking = BookingRepository(db).get_by_id(booking_id)
            if booking is None:
                raise NotFoundError(f"Booking {booking_id} not found")
            return booking.event_id

    @staticmethod
    def _load_for_transition(
        db: Session,
        booking_id: str,
        to_status: BookingStatus,
    ) -> Booking:
        booking = BookingRepository(db).get_by_id(booking_id, for_update=True)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")

        BookingStateMachine.validate_transition(booking.status, to_status)
        return booking

    @staticmethod
    def _seats_of(db: Session, booking: Booking) -> list[Seat]:
        held = SeatRepository(db).list_held_by(booking.event_id, booking.id)
        missing = set(booking.seat_ids) - {seat.id for seat in held}
        if missing:
            logger.warning(
                "Booking %s no longer holds seats %s",
                booking.id,
                sorted(missing),
            )
        return held

    def _cancel(
        self,
        db: Session,
        booking: Booking,
        reason: CancelReason,
        now: datetime,
    ) -> None:
        BookingStateMachine.validate_transition(booking.status, BookingStatus.CANCELLED)

        for seat in self._seats_of(db, booking):
            if seat.status is SeatStatus.LOCKED:
                self._release(seat)

        BookingRepository(db).update_status(booking.id, BookingStatus.CANCELLED, updated_at=now)
        booking.cancel_reason = reason

    @staticmethod
    def _release(seat: Seat) -> None:
        seat.status = SeatStatus.FREE
        seat.locked_at = None
        seat.booked_by = None
        seat.booking_id = None

    @staticmethod
    def _payment_instructions(event: Event, booking: Booking) -> str:
        return (
            f"You selected seats {', '.join(booking.seat_ids)}. "
            f"Amount due: {booking.total_price}. "
            f"Pay by bank transfer to phone {event.payment_phone}. "
            f"The seats are held until {booking.expires_at:%H:%M} UTC; "
            f"your tickets will be sent here once the payment is confirmed."
        )

    def _notify(self, target_identity: str, message: str) -> None:
        try:
            self.notifier.notify(target_identity, message)
        except Exception:
            logger.exception("Failed to deliver notification to %s", target_identity)
