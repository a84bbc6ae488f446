"""Initial schema: users, events, event_gates, event_participants.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("callsign", sa.Integer, nullable=True, unique=True),
        sa.Column("role", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("departure_icao", sa.String(4), nullable=False),
        sa.Column("arrival_icao", sa.String(4), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("flight_time", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "event_gates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "event_id", UUID(as_uuid=True),
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("gate_number", sa.String(20), nullable=False),
        sa.Column("airport_type", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "event_id", "gate_number", "airport_type",
            name="uq_event_gates_event_number_type",
        ),
        sa.CheckConstraint(
            "airport_type IN ('departure', 'arrival')",
            name="ck_event_gates_airport_type",
        ),
    )
    op.create_index(
        "ix_event_gates_event_type", "event_gates", ["event_id", "airport_type"],
    )

    op.create_table(
        "event_participants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "event_id", UUID(as_uuid=True),
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "departure_gate_id", UUID(as_uuid=True),
            sa.ForeignKey("event_gates.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "arrival_gate_id", UUID(as_uuid=True),
            sa.ForeignKey("event_gates.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "event_id", "user_id", name="uq_event_participants_event_user",
        ),
        sa.UniqueConstraint(
            "departure_gate_id", name="uq_event_participants_departure_gate",
        ),
        sa.UniqueConstraint(
            "arrival_gate_id", name="uq_event_participants_arrival_gate",
        ),
    )
    op.create_index(
        "ix_event_participants_user_id", "event_participants", ["user_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_event_participants_user_id", table_name="event_participants")
    op.drop_table("event_participants")
    op.drop_index("ix_event_gates_event_type", table_name="event_gates")
    op.drop_table("event_gates")
    op.drop_table("events")
    op.drop_table("users")
