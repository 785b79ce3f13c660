import logging

from flask import Flask
from flask_jwt_extended import JWTManager
from sqlalchemy import event

from config import Config, configure_logging
from errors import register_error_handlers
from models import db
from reservations import WRITE_TRANSACTION
from routes.auth_routes import auth_bp
from routes.booking_routes import booking_bp
from routes.movie_routes import movie_bp
from routes.showtime_routes import showtime_bp
from routes.user_routes import user_bp
from seed import ensure_admin_user, register_commands

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _engine_options(config):
    uri = config.SQLALCHEMY_DATABASE_URI
    if uri.startswith("postgresql"):
        # Bounds every statement a request issues.
        return {
            "pool_pre_ping": True,
            "connect_args": {"options": f"-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}"},
        }
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": max(config.DB_STATEMENT_TIMEOUT_MS / 1000, 1)}}
    return {}


def _serialize_sqlite_writers(engine):
    # Writes take the database lock at BEGIN; reads stay deferred.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(WRITE_TRANSACTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_app(config=None):
    config = config or Config.from_env()
    configure_logging(config.LOG_LEVEL)

    app = Flask(__name__)
    app.config.from_object(config)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options(config)

    db.init_app(app)
    JWTManager(app)

    app.register_blueprint(auth_bp, url_prefix=API_PREFIX)
    app.register_blueprint(user_bp, url_prefix=API_PREFIX)
    app.register_blueprint(movie_bp, url_prefix=API_PREFIX)
    app.register_blueprint(showtime_bp, url_prefix=API_PREFIX)
    app.register_blueprint(booking_bp, url_prefix=API_PREFIX)
    register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            _serialize_sqlite_writers(db.engine)
        db.create_all()
        ensure_admin_user(config.ADMIN_EMAIL, config.ADMIN_PASSWORD)

    logger.info("Application ready, API mounted at %s", API_PREFIX)
    return app


if __name__ == '__main__':
    settings = Config.from_env()
    create_app(settings).run(host="0.0.0.0", port=settings.PORT)
