import logging.config
import os
from datetime import timedelta

from dotenv import load_dotenv


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_url():
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if os.getenv("DB_NAME"):
        return "postgresql://{user}:{password}@{host}:{port}/{name}".format(
            user=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            host=os.getenv("DB_HOST", "127.0.0.1"),
            port=os.getenv("DB_PORT", "5432"),
            name=os.getenv("DB_NAME"),
        )
    return "sqlite:///reservations.db"


class Config:
    """Settings for one application instance.

    Built once at startup and handed to ``create_app``; nothing reads the
    environment after that.
    """

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_ALGORITHM = "HS256"
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_ACCESS_COOKIE_NAME = "Authorization"
    JWT_COOKIE_CSRF_PROTECT = False

    def __init__(self, **overrides):
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///reservations.db"
        self.JWT_SECRET_KEY = None
        self.TOKEN_TTL = timedelta(hours=24)
        self.JWT_COOKIE_SECURE = False
        self.PORT = 8080
        self.ADMIN_EMAIL = None
        self.ADMIN_PASSWORD = None
        self.TRANSACTION_RETRIES = 3
        self.TRANSACTION_BACKOFF = 0.05
        self.DB_STATEMENT_TIMEOUT_MS = 5000
        self.LOG_LEVEL = "INFO"
        self.TESTING = False

        for key, value in overrides.items():
            if not key.isupper():
                raise TypeError(f"Unknown config option: {key}")
            setattr(self, key, value)

        if not self.JWT_SECRET_KEY:
            raise RuntimeError("JWT_SECRET_KEY must be configured.")

    @property
    def JWT_ACCESS_TOKEN_EXPIRES(self):
        return self.TOKEN_TTL

    @classmethod
    def from_env(cls):
        load_dotenv()
        return cls(
            SQLALCHEMY_DATABASE_URI=_database_url(),
            JWT_SECRET_KEY=os.getenv("JWT_SECRET_KEY"),
            TOKEN_TTL=timedelta(hours=float(os.getenv("TOKEN_TTL_HOURS", "24"))),
            JWT_COOKIE_SECURE=_env_bool("COOKIE_SECURE"),
            PORT=int(os.getenv("PORT", "8080")),
            ADMIN_EMAIL=os.getenv("ADMIN_EMAIL"),
            ADMIN_PASSWORD=os.getenv("ADMIN_PASSWORD"),
            TRANSACTION_RETRIES=int(os.getenv("TRANSACTION_RETRIES", "3")),
            DB_STATEMENT_TIMEOUT_MS=int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level="INFO"):
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
                }
            },
            "handlers": {
                "wsgi": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {"level": level, "handlers": ["wsgi"]},
        }
    )
