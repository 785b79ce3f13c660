def _iso(value):
    return value.isoformat() if value else None


def user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role.value,
        "phone": user.phone,
        "address": user.address,
        "created_at": _iso(user.created_at),
    }


def showtime_payload(showtime):
    return {
        "id": showtime.id,
        "movie_id": showtime.movie_id,
        "movie_title": showtime.movie.title if showtime.movie else None,
        "start_time": _iso(showtime.start_time),
        "end_time": _iso(showtime.end_time),
        "created_at": _iso(showtime.created_at),
    }


def movie_payload(movie, include_showtimes=False):
    payload = {
        "id": movie.id,
        "title": movie.title,
        "description": movie.description,
        "genre": movie.genre.value,
        "poster_url": movie.poster_url,
        "release_date": _iso(movie.release_date),
        "created_at": _iso(movie.created_at),
    }
    if include_showtimes:
        payload["showtimes"] = [showtime_payload(s) for s in movie.showtimes]
    return payload


def seat_payload(seat):
    return {
        "id": seat.id,
        "showtime_id": seat.showtime_id,
        "seat_number": seat.seat_number,
        "is_reserved": seat.is_reserved,
    }


def reservation_payload(reservation):
    return {
        "id": reservation.id,
        "user_id": reservation.user_id,
        "user_name": reservation.user.full_name,
        "showtime_id": reservation.showtime_id,
        "showtime": _iso(reservation.showtime.start_time),
        "seat_id": reservation.seat_id,
        "seat_number": reservation.seat.seat_number,
        "created_at": _iso(reservation.created_at),
    }
