"""EventParticipant ORM: one pilot's membership in one event, with gate bindings.

Invariants:
    - At most one row per (event_id, user_id)
    - At most one row holds a given gate as departure_gate_id; same for arrival_gate_id
      (unique indexes, NULLs never collide: both gate fields may be null)
    - Gate references must point at a gate of matching role in the same event
      (checked by ParticipationManager before write)
    - Deleting the row releases both gates in the same statement

Design Decisions:
    - Unique indexes on the gate columns are the final arbiter for double booking:
      two transactions that decided on stale snapshots cannot both commit
    - Constraint names carry "departure_gate" / "arrival_gate" / "event_user" so
      IntegrityErrors can be classified (see services/participation_manager.py)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gatehouse.core.domain_types import GateRole, GateSlot, slot_from_column
from gatehouse.db.base import Base


def gate_attribute(role: GateRole) -> str:
    """Name of the participant column holding the gate for a role."""
    return f"{role.value}_gate_id"


class EventParticipant(Base):
    """Participant entity: pilot membership plus at most one gate per role."""
    __tablename__ = "event_participants"
    __table_args__ = (
        UniqueConstraint(
            "event_id", "user_id", name="uq_event_participants_event_user",
        ),
        UniqueConstraint(
            "departure_gate_id", name="uq_event_participants_departure_gate",
        ),
        UniqueConstraint(
            "arrival_gate_id", name="uq_event_participants_arrival_gate",
        ),
        Index("ix_event_participants_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    departure_gate_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("event_gates.id", ondelete="SET NULL"),
        nullable=True,
    )
    arrival_gate_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("event_gates.id", ondelete="SET NULL"),
        nullable=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship("Event", back_populates="participants")

    def gate_id_for(self, role: GateRole) -> uuid.UUID | None:
        return getattr(self, gate_attribute(role))

    def set_gate(self, role: GateRole, gate_id: uuid.UUID | None) -> None:
        setattr(self, gate_attribute(role), gate_id)

    def slot(self, role: GateRole) -> GateSlot:
        """Current gate state for one role as a tagged value."""
        return slot_from_column(self.gate_id_for(role))
