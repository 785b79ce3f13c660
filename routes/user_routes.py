import logging

from flask import Blueprint, g, request

from errors import NotFoundError
from models import Role, User
from reservations import run_in_transaction
from responses import respond
from routes.serializers import user_payload
from schemas import promote_schema
from security import admin_required, authenticated, current_user

logger = logging.getLogger(__name__)

user_bp = Blueprint("user_api", __name__)


@user_bp.route("/users/me", methods=["GET"])
@authenticated
def me():
    return respond(200, "User fetched successfully", user_payload(current_user()))


@user_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    users = User.query.filter(User.deleted_at.is_(None)).order_by(User.created_at.asc()).all()
    return respond(200, "Users fetched successfully", [user_payload(user) for user in users])


@user_bp.route("/users/promote", methods=["PUT"])
@admin_required
def promote_user():
    payload = promote_schema.load(request.get_json(silent=True) or {})
    promoter_id = g.user_id

    def _promote():
        query = User.query.filter(User.deleted_at.is_(None))
        if payload.get("user_id"):
            user = query.filter(User.id == payload["user_id"]).first()
        else:
            user = query.filter(User.email == payload["email"].lower()).first()
        if not user:
            raise NotFoundError("User not found")
        promoted = user.role is not Role.ADMIN
        user.role = Role.ADMIN
        return user, promoted

    user, promoted = run_in_transaction(_promote)
    if promoted:
        logger.info("User %s promoted to admin by %s", user.id, promoter_id)
    return respond(200, "User promoted to admin", user_payload(user))
