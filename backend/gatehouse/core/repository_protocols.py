"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods do IO, but the allocation engine that
      consumes their results stays synchronous and pure
    - Return types are structural (GateOccupancy, *Like protocols) so core never
      names an ORM class
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from gatehouse.core.allocate_gates import GateOccupancy
from gatehouse.core.domain_types import EventId, GateRole, UserId


class EventLike(Protocol):
    """Structural contract for the event row Gatehouse reads."""
    id: UUID
    title: str
    status: str


class UserLike(Protocol):
    id: str
    role: str | None


class GateLike(Protocol):
    id: UUID
    event_id: UUID
    gate_number: str
    airport_type: str


class ParticipantLike(Protocol):
    id: UUID
    event_id: UUID
    user_id: str
    departure_gate_id: UUID | None
    arrival_gate_id: UUID | None
    joined_at: datetime
    updated_at: datetime


class GateReader(Protocol):
    """Read side used inside a ParticipationManager transaction."""
    async def get_event(self, event_id: EventId) -> EventLike | None: ...
    async def get_user(self, user_id: UserId) -> UserLike | None: ...
    async def list_gates(
        self, event_id: EventId, role: GateRole | None = None,
    ) -> list[GateLike]: ...
    async def occupancy(
        self, event_id: EventId, role: GateRole,
    ) -> list[GateOccupancy]: ...
    async def get_participant(
        self, event_id: EventId, user_id: UserId, *, for_update: bool = False,
    ) -> ParticipantLike | None: ...
    async def list_participants(
        self, event_id: EventId,
    ) -> list[ParticipantLike]: ...


class RoleResolver(Protocol):
    """Contract for `GetUserRoles`: implemented by shell."""
    async def get_user_roles(self, user_id: UserId) -> frozenset[str]: ...
