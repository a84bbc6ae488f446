"""EventGate ORM: a named departure or arrival slot of one event.

Invariants:
    - Always belongs to an Event (event_id FK, cascade delete)
    - airport_type is "departure" or "arrival" (GateRole)
    - (event_id, gate_number, airport_type) is unique
    - Immutable from Gatehouse's point of view; occupancy lives on event_participants
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gatehouse.db.base import Base


class EventGate(Base):
    """Gate slot of an event."""
    __tablename__ = "event_gates"
    __table_args__ = (
        UniqueConstraint(
            "event_id", "gate_number", "airport_type",
            name="uq_event_gates_event_number_type",
        ),
        CheckConstraint(
            "airport_type IN ('departure', 'arrival')",
            name="ck_event_gates_airport_type",
        ),
        Index("ix_event_gates_event_type", "event_id", "airport_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    )
    gate_number: Mapped[str] = mapped_column(String(20), nullable=False)
    airport_type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="gates")
