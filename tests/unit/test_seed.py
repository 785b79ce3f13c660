from app import create_app
from config import Config
from helpers import STRONG_PASSWORD, TEST_SECRET, make_user, post_json
from models import Movie, Role, User, db
from seed import ensure_admin_user, seed_catalog


def test_startup_seeds_admin(tmp_path):
    app = create_app(
        Config(
            TESTING=True,
            JWT_SECRET_KEY=TEST_SECRET,
            SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'seed.db'}",
            ADMIN_EMAIL="Root@Example.com",
            ADMIN_PASSWORD=STRONG_PASSWORD,
        )
    )
    response = post_json(
        app.test_client(), "/api/v1/users/login", {"email": "root@example.com", "password": STRONG_PASSWORD}
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["user"]["role"] == "admin"
    with app.app_context():
        db.engine.dispose()


def test_ensure_admin_is_idempotent(app):
    make_user(app, "boss@example.com", role=Role.ADMIN)
    with app.app_context():
        assert ensure_admin_user("other@example.com", STRONG_PASSWORD) is None
        assert User.query.filter_by(role=Role.ADMIN).count() == 1


def test_ensure_admin_without_credentials(app):
    with app.app_context():
        assert ensure_admin_user(None, None) is None
        assert User.query.count() == 0


def test_seed_catalog_skips_existing(app):
    with app.app_context():
        first = seed_catalog()
        second = seed_catalog()
        assert first == Movie.query.count()
        assert second == 0


def test_seed_cli_command(app):
    result = app.test_cli_runner().invoke(args=["seed"])
    assert result.exit_code == 0
    assert "Seeding complete!" in result.output
