import logging

from flask import Blueprint, request
from sqlalchemy.orm import joinedload

from errors import NotFoundError, ValidationError
from models import Movie, Showtime, db
from reservations import create_showtime, get_showtime, run_in_transaction
from responses import respond
from routes.serializers import showtime_payload
from schemas import showtime_schema
from security import admin_required

logger = logging.getLogger(__name__)

showtime_bp = Blueprint("showtime_api", __name__)


@showtime_bp.route("/showtimes", methods=["POST"])
@admin_required
def post_showtime():
    payload = showtime_schema.load(request.get_json(silent=True) or {})
    showtime = create_showtime(payload["movie_id"], payload["start_time"], payload["end_time"])
    return respond(201, "Showtime created successfully", showtime_payload(showtime))


@showtime_bp.route("/showtimes", methods=["GET"])
def list_showtimes():
    showtimes = (
        Showtime.query.options(joinedload(Showtime.movie))
        .order_by(Showtime.start_time.asc())
        .all()
    )
    return respond(200, "Showtimes fetched successfully", [showtime_payload(s) for s in showtimes])


@showtime_bp.route("/showtimes/<showtime_id>", methods=["GET"])
def get_showtime_detail(showtime_id):
    return respond(200, "Showtime fetched successfully", showtime_payload(get_showtime(showtime_id)))


@showtime_bp.route("/showtimes/<showtime_id>", methods=["PUT"])
@admin_required
def update_showtime(showtime_id):
    updates = showtime_schema.load(request.get_json(silent=True) or {}, partial=True)

    def _update():
        showtime = get_showtime(showtime_id)
        if "movie_id" in updates and db.session.get(Movie, updates["movie_id"]) is None:
            raise NotFoundError("Movie not found")
        start = updates.get("start_time", showtime.start_time)
        end = updates.get("end_time", showtime.end_time)
        if end <= start:
            raise ValidationError("end_time must be after start_time")
        for field, value in updates.items():
            setattr(showtime, field, value)
        return showtime

    showtime = run_in_transaction(_update)
    return respond(200, "Showtime updated successfully", showtime_payload(showtime))


@showtime_bp.route("/showtimes/<showtime_id>", methods=["DELETE"])
@admin_required
def delete_showtime(showtime_id):
    def _delete():
        showtime = get_showtime(showtime_id)
        released = len(showtime.reservations)
        db.session.delete(showtime)
        return released

    released = run_in_transaction(_delete)
    logger.info("Showtime %s deleted with %d reservation(s)", showtime_id, released)
    return respond(200, "Showtime deleted successfully", {"id": showtime_id, "deleted_reservations": released})
