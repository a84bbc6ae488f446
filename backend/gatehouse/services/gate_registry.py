"""Gate Registry: per-event gate lists and occupancy snapshots read from the store.

Invariants:
    - Read-only: never adds, updates, or deletes rows
    - get_user lets writers reject unknown pilots before the users foreign key does
    - Bound to the caller's AsyncSession, so reads share the caller's transaction
    - occupancy() returns every gate of one (event, role), ordered by label then id,
      each paired with the participant holding it (or None)
    - get_participant(for_update=True) locks the row on backends that support it
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.allocate_gates import GateOccupancy
from gatehouse.core.domain_types import (
    EventId, GateId, GateRole, ParticipantId, UserId,
)
from gatehouse.models.event import Event
from gatehouse.models.event_gate import EventGate
from gatehouse.models.event_participant import EventParticipant, gate_attribute
from gatehouse.models.user import User

logger = logging.getLogger(__name__)


def gate_column(role: GateRole):
    """Participant column that holds the gate for a role."""
    return getattr(EventParticipant, gate_attribute(role))


class GateRegistry:
    """SQLAlchemy implementation of the GateReader protocol."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_event(self, event_id: EventId) -> Event | None:
        result = await self.db.execute(
            select(Event).where(Event.id == event_id),
        )
        return result.scalar_one_or_none()

    async def get_user(self, user_id: UserId) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_gates(
        self, event_id: EventId, role: GateRole | None = None,
    ) -> list[EventGate]:
        query = select(EventGate).where(EventGate.event_id == event_id)
        if role is not None:
            query = query.where(EventGate.airport_type == role.value)
        query = query.order_by(
            EventGate.airport_type, EventGate.gate_number, EventGate.id,
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def occupancy(
        self, event_id: EventId, role: GateRole,
    ) -> list[GateOccupancy]:
        """Snapshot of one role's gates and who holds them."""
        column = gate_column(role)
        result = await self.db.execute(
            select(EventGate.id, EventGate.gate_number, EventParticipant.id)
            .outerjoin(
                EventParticipant,
                (column == EventGate.id)
                & (EventParticipant.event_id == EventGate.event_id),
            )
            .where(EventGate.event_id == event_id)
            .where(EventGate.airport_type == role.value)
            .order_by(EventGate.gate_number, EventGate.id)
        )
        snapshot = [
            GateOccupancy(
                gate_id=GateId(gate_id),
                label=label,
                role=role,
                occupant_id=ParticipantId(occupant) if occupant else None,
            )
            for gate_id, label, occupant in result.all()
        ]
        logger.debug(
            f"Occupancy loaded: {sum(not g.is_free for g in snapshot)}"
            f"/{len(snapshot)} {role.value} gates held",
            extra={"event_id": event_id, "role": role.value},
        )
        return snapshot

    async def get_participant(
        self, event_id: EventId, user_id: UserId, *, for_update: bool = False,
    ) -> EventParticipant | None:
        query = (
            select(EventParticipant)
            .where(EventParticipant.event_id == event_id)
            .where(EventParticipant.user_id == user_id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_participants(
        self, event_id: EventId,
    ) -> list[EventParticipant]:
        result = await self.db.execute(
            select(EventParticipant)
            .where(EventParticipant.event_id == event_id)
            .order_by(EventParticipant.joined_at, EventParticipant.id)
        )
        return list(result.scalars().all())
