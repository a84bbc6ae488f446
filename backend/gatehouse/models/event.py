"""Event ORM: a scheduled group flight that owns gates and participants.

Invariants:
    - id is UUID primary key
    - status is one of EventStatus (draft, published, cancelled, completed)
    - Created/edited by event management; Gatehouse reads identity and status only
    - Deleting an event cascades to its gates and participants

Design Decisions:
    - status as String(20) over DB enum: new states need no migration
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gatehouse.db.base import Base


class Event(Base):
    """Event aggregate root: owns gates and participants."""
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft",
    )
    departure_icao: Mapped[str] = mapped_column(String(4), nullable=False)
    arrival_icao: Mapped[str] = mapped_column(String(4), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    flight_time: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
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

    # Relationships
    gates: Mapped[list["EventGate"]] = relationship(
        "EventGate", back_populates="event",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    participants: Mapped[list["EventParticipant"]] = relationship(
        "EventParticipant", back_populates="event",
        cascade="all, delete-orphan", passive_deletes=True,
    )
