import logging
from functools import wraps

import bcrypt
import jwt
from flask import g, request
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTDecodeError
from sqlalchemy.exc import SQLAlchemyError

from errors import AuthError, AuthFailure, ForbiddenError, HashingError, InternalError
from models import User, db

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12


def hash_password(password):
    try:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    except (TypeError, ValueError) as exc:
        raise HashingError() from exc
    return hashed.decode("utf-8")


def verify_password(entered_password, stored_hash):
    if not isinstance(entered_password, str) or not isinstance(stored_hash, str):
        return False
    try:
        return bcrypt.checkpw(entered_password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or an over-long password.
        return False


def issue_token(user_id, expires_delta=None):
    """Sign a token for ``user_id``; the default lifetime is ``TOKEN_TTL``."""
    if expires_delta is None:
        return create_access_token(identity=user_id)
    return create_access_token(identity=user_id, expires_delta=expires_delta)


def verify_token(token):
    """Decode ``token`` and return ``{"user_id": ...}``.

    Raises ``AuthError`` whose ``reason`` tells a bad signature (or a
    disallowed algorithm) apart from an expired token and from claims that
    are missing or of the wrong type.
    """
    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise AuthError(AuthFailure.EXPIRED) from exc
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
        raise AuthError(AuthFailure.INVALID_SIGNATURE) from exc
    except (jwt.InvalidTokenError, JWTDecodeError) as exc:
        raise AuthError(AuthFailure.MALFORMED) from exc

    user_id = claims.get("sub")
    if not isinstance(user_id, str) or not user_id or not isinstance(claims.get("exp"), int):
        raise AuthError(AuthFailure.MALFORMED)
    return {"user_id": user_id}


def token_from_request(req):
    header = req.headers.get("Authorization", "").strip()
    if header:
        scheme, _, value = header.partition(" ")
        if value and scheme.lower() == "bearer":
            return value.strip()
        if not value:
            return scheme
    cookie = req.cookies.get("Authorization")
    if cookie:
        return cookie
    raise AuthError(AuthFailure.MISSING)


def _load_user(user_id):
    try:
        return db.session.get(User, user_id)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed for %s", user_id)
        raise InternalError("internal server error") from exc


def authenticated(fn):
    """Reject the request with 401 unless it carries a valid token.

    On success the caller's id and row are bound to ``g.user_id`` and
    ``g.current_user``.
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        claims = verify_token(token_from_request(request))
        user = _load_user(claims["user_id"])
        if user is None or user.deleted_at is not None:
            raise AuthError(AuthFailure.UNKNOWN_USER)
        g.user_id = user.id
        g.current_user = user
        return fn(*args, **kwargs)

    return wrapper


def admin_required(fn):
    # Always wrapped in ``authenticated`` so it cannot run without an identity.
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user_id = g.get("user_id")
        if user_id is None:
            raise AuthError(AuthFailure.UNKNOWN_USER)
        requester = _load_user(user_id)
        if requester is None:
            raise AuthError(AuthFailure.UNKNOWN_USER)
        if not requester.is_admin:
            logger.warning("User %s denied access to %s", user_id, request.path)
            raise ForbiddenError()
        return fn(*args, **kwargs)

    return authenticated(wrapper)


def current_user():
    return g.current_user
