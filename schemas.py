import re
from datetime import timezone
from typing import Any, Dict

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    post_load,
    pre_load,
    validate,
    validates,
    validates_schema,
)

from models import Genre

SEAT_NUMBER_PATTERN = r"^Seat-\d+$"


class RegisterSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True)
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    phone = fields.Str(load_default=None, validate=validate.Length(max=20))
    address = fields.Str(load_default=None, validate=validate.Length(max=255))

    @pre_load
    def normalize(self, data: Dict[str, Any], **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("email", "first_name", "last_name"):
            value = data.get(key)
            if isinstance(value, str):
                data[key] = value.strip()
        if isinstance(data.get("email"), str):
            data["email"] = data["email"].lower()
        return data

    @validates("password")
    def validate_password(self, value: str, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters")
        if len(value.encode("utf-8")) > 72:
            raise ValidationError("Password must be at most 72 bytes")
        if not re.search(r"[A-Z]", value):
            raise ValidationError("Password must have an uppercase letter")
        if not re.search(r"[a-z]", value):
            raise ValidationError("Password must have a lowercase letter")
        if not re.search(r"\d", value):
            raise ValidationError("Password must have a number")
        if not re.search(r"[^A-Za-z0-9]", value):
            raise ValidationError("Password must have at least 1 special character")


class LoginSchema(Schema):
    email = fields.Str(required=True)
    password = fields.Str(required=True)

    @pre_load
    def normalize_email(self, data: Dict[str, Any], **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if isinstance(data.get("email"), str):
            data["email"] = data["email"].strip().lower()
        return data


class PromoteSchema(Schema):
    user_id = fields.Str()
    email = fields.Email()

    @validates_schema
    def validate_target(self, data, **kwargs):
        if not data.get("user_id") and not data.get("email"):
            raise ValidationError("Either user_id or email is required")


class MovieSchema(Schema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    description = fields.Str(required=True, validate=validate.Length(min=1))
    genre = fields.Enum(Genre, by_value=True, required=True)
    poster_url = fields.Str(load_default=None, validate=validate.Length(max=500))
    release_date = fields.Date(required=True)


def _as_naive_utc(value):
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ShowtimeSchema(Schema):
    movie_id = fields.Str(required=True, validate=validate.Length(min=1, max=36))
    start_time = fields.DateTime(required=True)
    end_time = fields.DateTime(required=True)

    @post_load
    def to_utc(self, data, **kwargs):
        for key in ("start_time", "end_time"):
            if key in data:
                data[key] = _as_naive_utc(data[key])
        return data

    @validates_schema
    def validate_window(self, data, **kwargs):
        start, end = data.get("start_time"), data.get("end_time")
        if start is not None and end is not None and _as_naive_utc(end) <= _as_naive_utc(start):
            raise ValidationError("end_time must be after start_time", "end_time")


class ReservationRequestSchema(Schema):
    showtime_id = fields.Str(required=True)
    seat_numbers = fields.List(
        fields.Str(validate=validate.Regexp(SEAT_NUMBER_PATTERN, error="Invalid seat number {input}")),
        required=True,
        validate=validate.Length(min=1, max=100),
    )

    @validates("seat_numbers")
    def validate_unique(self, value, **kwargs):
        if len(set(value)) != len(value):
            raise ValidationError("Seat numbers must not repeat")


register_schema = RegisterSchema()
login_schema = LoginSchema()
promote_schema = PromoteSchema()
movie_schema = MovieSchema()
showtime_schema = ShowtimeSchema()
reservation_request_schema = ReservationRequestSchema()
