import enum
import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

SEATS_PER_SHOWTIME = 100


def new_id():
    return str(uuid.uuid4())


def utcnow():
    """Naive UTC now; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    GUEST = "guest"


class Genre(str, enum.Enum):
    ACTION = "Action"
    COMEDY = "Comedy"
    DRAMA = "Drama"
    HORROR = "Horror"
    ROMANCE = "Romance"
    SCI_FI = "Sci-Fi"
    DOCUMENTARY = "Documentary"
    ADVENTURE = "Adventure"
    THRILLER = "Thriller"
    MYSTERY = "Mystery"
    SCIENCE_FICTION = "Science Fiction"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(Role, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=Role.USER,
    )
    phone = db.Column(db.String(20))
    address = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    deleted_at = db.Column(db.DateTime, index=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self):
        return self.role is Role.ADMIN


class Movie(db.Model):
    __tablename__ = 'movies'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    genre = db.Column(
        db.Enum(Genre, name="movie_genre", values_callable=_enum_values),
        nullable=False,
    )
    poster_url = db.Column(db.String(500))
    release_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    showtimes = db.relationship(
        "Showtime",
        back_populates="movie",
        cascade="all, delete-orphan",
        order_by="Showtime.start_time",
    )


class Showtime(db.Model):
    __tablename__ = 'showtimes'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    movie_id = db.Column(db.String(36), db.ForeignKey('movies.id'), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    movie = db.relationship("Movie", back_populates="showtimes")
    reservations = db.relationship("Reservation", back_populates="showtime", cascade="all, delete-orphan")
    seats = db.relationship("Seat", back_populates="showtime", cascade="all, delete-orphan")


class Seat(db.Model):
    __tablename__ = 'seats'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    showtime_id = db.Column(db.String(36), db.ForeignKey('showtimes.id'), nullable=False, index=True)
    seat_number = db.Column(db.String(20), nullable=False)
    is_reserved = db.Column(db.Boolean, nullable=False, default=False)

    showtime = db.relationship("Showtime", back_populates="seats")

    __table_args__ = (
        db.UniqueConstraint("showtime_id", "seat_number", name="uq_showtime_seat_number"),
    )

    @property
    def index(self):
        return int(self.seat_number.rsplit("-", 1)[-1])


class Reservation(db.Model):
    __tablename__ = 'reservations'
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    showtime_id = db.Column(db.String(36), db.ForeignKey('showtimes.id'), nullable=False, index=True)
    # One live reservation per seat.
    seat_id = db.Column(db.String(36), db.ForeignKey('seats.id'), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")
    showtime = db.relationship("Showtime", back_populates="reservations")
    seat = db.relationship("Seat")
