import logging
from datetime import date

import click
from flask import current_app

from models import Genre, Movie, Role, User, db
from security import hash_password

logger = logging.getLogger(__name__)

seed_movies = [
    {
        "title": "Interstellar",
        "description": "Explorers travel through a wormhole in search of a new home for humanity.",
        "genre": Genre.SCIENCE_FICTION,
        "release_date": date(2014, 11, 7),
    },
    {
        "title": "Arrival",
        "description": "A linguist works to communicate with visitors from another world.",
        "genre": Genre.SCI_FI,
        "release_date": date(2016, 11, 11),
    },
    {
        "title": "The Grand Budapest Hotel",
        "description": "A concierge and his lobby boy are caught up in the theft of a painting.",
        "genre": Genre.COMEDY,
        "release_date": date(2014, 3, 28),
    },
]


def ensure_admin_user(email, password):
    """Create the first admin account unless one already exists."""
    if User.query.filter_by(role=Role.ADMIN).first():
        logger.info("Admin user already exists")
        return None
    if not email or not password:
        logger.warning("No admin user exists and ADMIN_EMAIL / ADMIN_PASSWORD are not set")
        return None

    admin = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        first_name="Admin",
        last_name="User",
        role=Role.ADMIN,
    )
    db.session.add(admin)
    db.session.commit()
    logger.info("Initial admin user created")
    return admin


def seed_catalog():
    added = 0
    for data in seed_movies:
        if Movie.query.filter_by(title=data["title"]).first():
            logger.info("Skipping %s (already in DB)", data["title"])
            continue
        db.session.add(Movie(**data))
        added += 1
    db.session.commit()
    return added


def register_commands(app):
    @app.cli.command("seed")
    def seed_command():
        """Ensure an admin exists and load the sample catalog."""
        ensure_admin_user(current_app.config.get("ADMIN_EMAIL"), current_app.config.get("ADMIN_PASSWORD"))
        added = seed_catalog()
        click.echo(f"Seeding complete! {added} movie(s) added.")
