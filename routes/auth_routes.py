import logging

from flask import Blueprint, request
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies
from sqlalchemy.exc import IntegrityError

from errors import AuthError, AuthFailure, ConflictError
from models import Role, User, db
from reservations import run_in_transaction
from responses import respond
from routes.serializers import user_payload
from schemas import login_schema, register_schema
from security import hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/users/register", methods=["POST"])
def register():
    payload = register_schema.load(request.get_json(silent=True) or {})

    email = payload["email"]
    if User.query.filter_by(email=email).first():
        raise ConflictError("Email already exists")

    password_hash = hash_password(payload["password"])

    def _create():
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=payload["first_name"],
            last_name=payload["last_name"],
            phone=payload.get("phone"),
            address=payload.get("address"),
            role=Role.USER,
        )
        db.session.add(user)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConflictError("Email already exists") from exc
        return user

    new_user = run_in_transaction(_create)

    logger.info("Registered user %s", new_user.id)
    token = issue_token(new_user.id)
    response = respond(201, "Successful", token)
    set_access_cookies(response, token)
    return response


@auth_bp.route("/users/login", methods=["POST"])
def login():
    payload = login_schema.load(request.get_json(silent=True) or {})

    user = User.query.filter_by(email=payload["email"]).first()
    if not user or user.deleted_at is not None or not verify_password(payload["password"], user.password_hash):
        logger.warning("Failed login for %s", payload["email"])
        raise AuthError(AuthFailure.BAD_CREDENTIALS)

    token = issue_token(user.id)
    logger.info("User %s logged in", user.id)
    response = respond(200, "Successful login", {"token": token, "user": user_payload(user)})
    set_access_cookies(response, token)
    return response


@auth_bp.route("/users/logout", methods=["POST"])
def logout():
    response = respond(200, "Logged out")
    unset_jwt_cookies(response)
    return response
