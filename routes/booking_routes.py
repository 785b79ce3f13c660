from flask import Blueprint, request

from reservations import (
    cancel_reservation,
    list_seats,
    reservations_for_showtime,
    reservations_for_user,
    reserve_seats,
)
from responses import respond
from routes.serializers import reservation_payload, seat_payload
from schemas import reservation_request_schema
from security import admin_required, authenticated, current_user

booking_bp = Blueprint("booking_api", __name__)


@booking_bp.route("/seats/<showtime_id>", methods=["GET"])
def get_seats(showtime_id):
    seats = list_seats(showtime_id)
    return respond(200, "Seats fetched successfully", [seat_payload(seat) for seat in seats])


@booking_bp.route("/reservation", methods=["POST"])
@authenticated
def post_reservation():
    payload = reservation_request_schema.load(request.get_json(silent=True) or {})
    reservations = reserve_seats(current_user().id, payload["showtime_id"], payload["seat_numbers"])
    return respond(
        200,
        "Seats reserved successfully",
        [reservation_payload(r) for r in reservations],
    )


@booking_bp.route("/reservation/me", methods=["GET"])
@authenticated
def my_reservations():
    reservations = reservations_for_user(current_user().id)
    return respond(200, "Reservations fetched successfully", [reservation_payload(r) for r in reservations])


@booking_bp.route("/reservation/<reservation_id>", methods=["DELETE"])
@authenticated
def delete_reservation(reservation_id):
    cancel_reservation(reservation_id, current_user())
    return respond(200, "Reservation successfully canceled", {"id": reservation_id})


@booking_bp.route("/reservation/admin/<showtime_id>", methods=["GET"])
@admin_required
def showtime_reservations(showtime_id):
    reservations = reservations_for_showtime(showtime_id)
    return respond(
        200,
        "Showtime Reservations fetched successfully",
        [reservation_payload(r) for r in reservations],
    )
