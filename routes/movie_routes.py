import logging

from flask import Blueprint, request
from sqlalchemy.orm import selectinload

from errors import NotFoundError
from models import Movie, db
from reservations import run_in_transaction
from responses import respond
from routes.serializers import movie_payload
from schemas import movie_schema
from security import admin_required

logger = logging.getLogger(__name__)

movie_bp = Blueprint("movie_api", __name__)


def _get_movie_or_404(movie_id):
    movie = db.session.get(Movie, movie_id)
    if not movie:
        raise NotFoundError("Movie not found")
    return movie


@movie_bp.route("/movies", methods=["POST"])
@admin_required
def create_movie():
    payload = movie_schema.load(request.get_json(silent=True) or {})

    def _create():
        movie = Movie(**payload)
        db.session.add(movie)
        db.session.flush()
        return movie

    movie = run_in_transaction(_create)
    logger.info("Movie %s created", movie.id)
    return respond(201, "Movie created successfully", movie_payload(movie))


@movie_bp.route("/movies", methods=["GET"])
def list_movies():
    movies = Movie.query.order_by(Movie.release_date.desc(), Movie.title.asc()).all()
    return respond(200, "Movies fetched successfully", [movie_payload(m) for m in movies])


@movie_bp.route("/movies/<movie_id>", methods=["GET"])
def get_movie(movie_id):
    movie = (
        Movie.query.options(selectinload(Movie.showtimes))
        .filter_by(id=movie_id)
        .first()
    )
    if not movie:
        raise NotFoundError("Movie not found")
    return respond(200, "Movie fetched successfully", movie_payload(movie, include_showtimes=True))


@movie_bp.route("/movies/<movie_id>", methods=["PUT"])
@admin_required
def update_movie(movie_id):
    updates = movie_schema.load(request.get_json(silent=True) or {}, partial=True)

    def _update():
        movie = _get_movie_or_404(movie_id)
        for field, value in updates.items():
            setattr(movie, field, value)
        return movie

    movie = run_in_transaction(_update)
    return respond(200, "Movie updated successfully", movie_payload(movie))


@movie_bp.route("/movies/<movie_id>", methods=["DELETE"])
@admin_required
def delete_movie(movie_id):
    def _delete():
        # Cascades to showtimes, their seats and their reservations.
        db.session.delete(_get_movie_or_404(movie_id))

    run_in_transaction(_delete)
    logger.info("Movie %s deleted", movie_id)
    return respond(200, "Movie deleted successfully", {"id": movie_id})
