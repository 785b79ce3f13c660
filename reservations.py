"""Seat inventory and the reserve / cancel workflow.

Every mutation here runs inside one database transaction. Cross-request
safety comes from the database alone: seats are claimed and released with
conditional ``UPDATE ... WHERE is_reserved = ?`` statements whose affected
row count decides the outcome, so two servers sharing a database cannot
double-book a seat.
"""
import logging
import time
from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from errors import (
    APIError,
    CancellationTooSoon,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)
from models import (
    SEATS_PER_SHOWTIME,
    Movie,
    Reservation,
    Seat,
    Showtime,
    db,
    utcnow,
)

logger = logging.getLogger(__name__)

CANCELLATION_CUTOFF = timedelta(hours=24)

# serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"40001", "40P01"}

# Execution option marking a connection that will write; SQLite begins
# those transactions with BEGIN IMMEDIATE.
WRITE_TRANSACTION = "write_transaction"


def _is_transient(exc):
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in TRANSIENT_SQLSTATES:
        return True
    return "database is locked" in str(orig)


def _begin_write():
    # Ends any open read transaction, then opens a write one.
    if db.session().in_transaction():
        db.session.commit()
    db.session.connection(execution_options={WRITE_TRANSACTION: True})


def run_in_transaction(work, *args, **kwargs):
    """Run ``work`` and commit, rolling everything back on any failure.

    Serialization failures and deadlocks are retried with exponential
    backoff. Business-rule errors (``APIError``) are raised after rollback
    and never retried.
    """
    attempts = max(1, current_app.config.get("TRANSACTION_RETRIES", 3))
    backoff = current_app.config.get("TRANSACTION_BACKOFF", 0.05)
    for attempt in range(1, attempts + 1):
        try:
            _begin_write()
            result = work(*args, **kwargs)
            db.session.commit()
            return result
        except APIError:
            db.session.rollback()
            raise
        except OperationalError as exc:
            db.session.rollback()
            if _is_transient(exc) and attempt < attempts:
                delay = backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Transient failure in %s (attempt %d/%d), retrying in %.2fs",
                    work.__name__, attempt, attempts, delay,
                )
                time.sleep(delay)
                continue
            logger.exception("Transaction %s failed", work.__name__)
            raise InternalError("Failed to commit transaction") from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Transaction %s failed", work.__name__)
            raise InternalError("Failed to commit transaction") from exc


def get_showtime(showtime_id):
    showtime = db.session.get(Showtime, showtime_id)
    if showtime is None:
        raise NotFoundError("Showtime not found")
    return showtime


def seat_numbers(count=SEATS_PER_SHOWTIME):
    return [f"Seat-{n}" for n in range(1, count + 1)]


def create_showtime(movie_id, start_time, end_time):
    """Create a showtime together with its full seat inventory."""

    def _create():
        if db.session.get(Movie, movie_id) is None:
            raise NotFoundError("Movie not found")
        showtime = Showtime(movie_id=movie_id, start_time=start_time, end_time=end_time)
        showtime.seats = [Seat(seat_number=number, is_reserved=False) for number in seat_numbers()]
        db.session.add(showtime)
        db.session.flush()
        return showtime

    showtime = run_in_transaction(_create)
    logger.info("Created showtime %s for movie %s with %d seats", showtime.id, movie_id, SEATS_PER_SHOWTIME)
    return showtime


def list_seats(showtime_id):
    get_showtime(showtime_id)
    seats = Seat.query.filter_by(showtime_id=showtime_id).all()
    return sorted(seats, key=lambda seat: seat.index)


def reserve_seats(user_id, showtime_id, requested_numbers):
    """Reserve every seat in ``requested_numbers`` for ``user_id``, or none.

    Raises ``NotFoundError`` for an unknown showtime or seat number and
    ``ConflictError`` naming the first seat that someone else holds.
    """

    def _reserve():
        get_showtime(showtime_id)
        seats = Seat.query.filter(
            Seat.showtime_id == showtime_id,
            Seat.seat_number.in_(requested_numbers),
        ).all()
        by_number = {seat.seat_number: seat for seat in seats}
        for number in requested_numbers:
            if number not in by_number:
                raise NotFoundError(f"Seat {number} not found")

        ordered = [by_number[number] for number in requested_numbers]
        # Seats are claimed in id order.
        for seat in sorted(ordered, key=lambda s: s.id):
            claimed = db.session.execute(
                update(Seat)
                .where(Seat.id == seat.id, Seat.is_reserved.is_(False))
                .values(is_reserved=True)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise ConflictError(f"Seat {seat.seat_number} is already reserved")

        reservations = [
            Reservation(user_id=user_id, showtime_id=showtime_id, seat_id=seat.id)
            for seat in ordered
        ]
        db.session.add_all(reservations)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError("One or more seats are already reserved") from exc
        return reservations

    reservations = run_in_transaction(_reserve)
    logger.info(
        "User %s reserved %s for showtime %s",
        user_id, ", ".join(requested_numbers), showtime_id,
    )
    return reservations


def reservation_for_update(reservation_id):
    # A concurrent cancel blocks on the row lock and then finds nothing.
    return (
        Reservation.query.options(joinedload(Reservation.showtime, innerjoin=True))
        .filter_by(id=reservation_id)
        .with_for_update(of=Reservation)
    )


def cancel_reservation(reservation_id, requester, now=None):
    """Cancel a reservation and free its seat.

    Only the owner or an admin may cancel, and only while the showtime is
    more than ``CANCELLATION_CUTOFF`` away.
    """

    def _cancel():
        reservation = reservation_for_update(reservation_id).first()
        if reservation is None:
            raise NotFoundError("Failed to find reservation")
        if reservation.user_id != requester.id and not requester.is_admin:
            raise ForbiddenError("Not authorized to cancel this reservation")

        current = now or utcnow()
        if reservation.showtime.start_time - current <= CANCELLATION_CUTOFF:
            raise CancellationTooSoon()

        seat_id = reservation.seat_id
        db.session.delete(reservation)
        db.session.flush()
        released = db.session.execute(
            update(Seat)
            .where(Seat.id == seat_id, Seat.is_reserved.is_(True))
            .values(is_reserved=False)
            .execution_options(synchronize_session=False)
        )
        if released.rowcount != 1:
            raise InternalError("Failed to update seat reservation status")
        return seat_id

    seat_id = run_in_transaction(_cancel)
    logger.info("Reservation %s cancelled by %s, seat %s released", reservation_id, requester.id, seat_id)


def _reservation_query():
    return Reservation.query.options(
        joinedload(Reservation.user),
        joinedload(Reservation.seat),
        joinedload(Reservation.showtime),
    )


def reservations_for_user(user_id):
    return _reservation_query().filter(Reservation.user_id == user_id).all()


def reservations_for_showtime(showtime_id):
    get_showtime(showtime_id)
    return _reservation_query().filter(Reservation.showtime_id == showtime_id).all()
