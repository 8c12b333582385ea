"""Initial schema: users, movies, rooms, screenings, bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "movies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("poster_url", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_movies_id", "movies", ["id"])

    # The seat layout lives in the room row as one JSON document. Writers
    # lock the row (SELECT ... FOR UPDATE) before rewriting it.
    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("layout", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_rooms_id", "rooms", ["id"])

    op.create_table(
        "screenings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("movie_id", sa.Integer(), sa.ForeignKey("movies.id"), nullable=False),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="check_screening_times"),
        sa.CheckConstraint("price >= 0", name="check_screening_price_non_negative"),
    )
    op.create_index("ix_screenings_id", "screenings", ["id"])
    op.create_index("ix_screenings_movie_id", "screenings", ["movie_id"])
    op.create_index("ix_screenings_room_id", "screenings", ["room_id"])
    # The deadline sweep and the listing both range-scan on start_time
    op.create_index("ix_screenings_start_time", "screenings", ["start_time"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("folio", sa.String(9), nullable=False),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'ACTIVA'")),
        sa.Column("seats", sa.JSON(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("screening_id", sa.Integer(), sa.ForeignKey("screenings.id"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("status IN ('ACTIVA', 'CANCELADA')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    # Folio uniqueness is the ledger-level guard behind folio regeneration
    op.create_index("ix_bookings_folio", "bookings", ["folio"], unique=True)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_screening_id", "bookings", ["screening_id"])
    op.create_index("ix_bookings_status_screening", "bookings", ["status", "screening_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("screenings")
    op.drop_table("rooms")
    op.drop_table("movies")
    op.drop_table("users")
