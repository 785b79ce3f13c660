import json
from datetime import date, timedelta

import security
from models import Genre, Movie, Role, User, db, utcnow
from reservations import create_showtime

TEST_SECRET = "unit-test-secret-key-with-enough-bytes"
STRONG_PASSWORD = "Valid123!"


def post_json(client, url, payload, token=None, method="post"):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return getattr(client, method)(
        url, data=json.dumps(payload), content_type="application/json", headers=headers
    )


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, password=STRONG_PASSWORD, first_name="Test", last_name="User"):
    return post_json(
        client,
        "/api/v1/users/register",
        {"email": email, "password": password, "first_name": first_name, "last_name": last_name},
    )


def register_and_token(client, email, **kwargs):
    response = register(client, email, **kwargs)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def make_user(app, email, role=Role.USER, first_name="Test", last_name="User"):
    with app.app_context():
        user = User(
            email=email,
            password_hash=security.hash_password(STRONG_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user.id


def token_for(app, user_id):
    with app.app_context():
        return security.issue_token(user_id)


def make_movie(app, title="Interstellar"):
    with app.app_context():
        movie = Movie(
            title=title,
            description="A journey beyond the stars.",
            genre=Genre.SCIENCE_FICTION,
            release_date=date(2014, 11, 7),
        )
        db.session.add(movie)
        db.session.commit()
        return movie.id


def make_showtime(app, movie_id=None, starts_in=timedelta(days=3)):
    movie_id = movie_id or make_movie(app)
    with app.app_context():
        start = utcnow() + starts_in
        showtime = create_showtime(movie_id, start, start + timedelta(hours=2))
        return showtime.id
