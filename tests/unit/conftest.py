import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import security
from app import create_app
from config import Config
from helpers import TEST_SECRET, make_user, token_for
from models import Role, db


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture()
def app(tmp_path):
    app = create_app(
        Config(
            TESTING=True,
            JWT_SECRET_KEY=TEST_SECRET,
            SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'unit.db'}",
            TRANSACTION_BACKOFF=0.01,
            TRANSACTION_RETRIES=5,
            LOG_LEVEL="DEBUG",
        )
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_token(app):
    return token_for(app, make_user(app, "admin@example.com", role=Role.ADMIN, first_name="Ada"))
