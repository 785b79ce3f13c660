import enum
import logging

from flask import request
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from responses import respond

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base for errors that map onto an HTTP status and a client-safe message."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(APIError):
    status_code = 400
    default_message = "Invalid request payload"


class AuthFailure(enum.Enum):
    MISSING = "missing or invalid token"
    INVALID_SIGNATURE = "token signature is invalid"
    EXPIRED = "token has expired"
    MALFORMED = "token claims are malformed"
    UNKNOWN_USER = "permission denied"
    BAD_CREDENTIALS = "Invalid email or password"


class AuthError(APIError):
    status_code = 401

    def __init__(self, reason=AuthFailure.MISSING):
        self.reason = reason
        super().__init__(reason.value)


class ForbiddenError(APIError):
    status_code = 403
    default_message = "Access Denied: Only admins are authorized to perform this action."


class NotFoundError(APIError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(APIError):
    status_code = 409
    default_message = "Resource already exists"


class CancellationTooSoon(APIError):
    status_code = 400
    default_message = "Cancellation allowed only for events more than 24 hours in advance"


class InternalError(APIError):
    status_code = 500


class HashingError(InternalError):
    default_message = "Failed to hash password"


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(exc):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc.message)
        else:
            logger.warning("%s %s -> %s: %s", request.method, request.path, exc.status_code, exc.message)
        return respond(exc.status_code, exc.message)

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(exc):
        errors = []
        for field, messages in _flatten(exc.messages):
            for message in messages:
                errors.append({"field": field, "msg": message})
        return respond(400, "Invalid input", errors=errors)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return respond(exc.code, exc.description)

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return respond(500, "Internal server error")


def _flatten(messages, prefix=""):
    if isinstance(messages, list):
        yield prefix or "_schema", [str(m) for m in messages]
        return
    for key, value in messages.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            yield from _flatten(value, name)
        else:
            yield name, [str(m) for m in value] if isinstance(value, list) else [str(value)]

