"""Participation Manager: join, leave, and gate (re)assignment inside one transaction each.

Invariants:
    - The only component that writes event_participants
    - Every operation opens its own session + transaction; occupancy is re-read inside
      it, never trusted from an earlier read
    - All domain errors are raised before commit, so the transaction rolls back and
      no partial write (one gate bound, the other not) is ever visible
    - Explicit gate requests never fall back: Unavailable -> InvalidGateError/GateConflictError
    - Auto-mode exhaustion is a successful join with that gate left null
    - A unique-index violation on a gate column means a racing writer won:
      explicit mode -> GateConflictError; auto mode -> re-run with a fresh snapshot
      (bounded by max_attempts), then GateConflictError
    - Reassignment is one UPDATE of one column: the participant never holds two gates
      of a role, and the old gate is never released without the new one being bound
    - admin_* operations check the event-management capability before any read
    - admin_assign_gate implicitly joins a target that has not joined (staff
      pre-assignment); the implicit join ignores event status
    - Joins and implicit joins check the pilot exists (UserNotFoundError) before
      the insert, so the users foreign key never surfaces as a 503

Design Decisions:
    - Impureim sandwich: GateRegistry reads -> allocate_gates decides -> this module writes
    - registry_factory injectable: tests substitute a stale-snapshot reader to prove the
      storage layer is the final arbiter
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import AsyncGenerator, Callable, Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatehouse.core.allocate_gates import (
    AutoAssigned,
    Decision,
    GateOccupancy,
    Unavailable,
    UnavailableReason,
    decide_assignment,
    decision_to_slot,
    summarize_outcome,
)
from gatehouse.core.domain_types import (
    AssignmentOutcome, Bound, EventId, EventStatus, GateId, GateRole, UserId,
    slot_to_column,
)
from gatehouse.core.errors import (
    AccessDeniedError,
    AlreadyJoinedError,
    ErrorContext,
    EventNotFoundError,
    EventNotOpenError,
    GateConflictError,
    InvalidGateError,
    NotParticipantError,
    UserNotFoundError,
)
from gatehouse.core.repository_protocols import GateReader
from gatehouse.core.roles import EVENT_MANAGEMENT, has_event_management_capability
from gatehouse.infrastructure.database import map_database_error
from gatehouse.models.event import Event
from gatehouse.models.event_participant import EventParticipant
from gatehouse.services.gate_registry import GateRegistry

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class JoinResult:
    """Created participant plus how each role was resolved."""
    participant: EventParticipant
    departure: Decision
    arrival: Decision
    outcome: AssignmentOutcome

    def was_auto_assigned(self, role: GateRole) -> bool:
        decision = self.departure if role == GateRole.DEPARTURE else self.arrival
        return isinstance(decision, AutoAssigned)


@dataclass(frozen=True)
class EventDetails:
    """Consistent read of one event's gates and participants."""
    event: Event
    departure_gates: list[GateOccupancy] = field(default_factory=list)
    arrival_gates: list[GateOccupancy] = field(default_factory=list)
    participants: list[EventParticipant] = field(default_factory=list)


# ─── IntegrityError classification ──────────────────────────────

def _constraint_message(e: IntegrityError) -> str:
    return str(e.orig if e.orig is not None else e).lower()


def conflicting_gate_role(e: IntegrityError) -> GateRole | None:
    """Which gate uniqueness index rejected the write, if any.

    Postgres names the constraint (uq_event_participants_departure_gate);
    SQLite names the column (event_participants.departure_gate_id).
    """
    msg = _constraint_message(e)
    if "departure_gate" in msg:
        return GateRole.DEPARTURE
    if "arrival_gate" in msg:
        return GateRole.ARRIVAL
    return None


def is_duplicate_membership(e: IntegrityError) -> bool:
    msg = _constraint_message(e)
    return "event_user" in msg or "event_participants.user_id" in msg


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ParticipationManager:
    """Transactional orchestration of event participation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 3,
        registry_factory: Callable[[AsyncSession], GateReader] = GateRegistry,
    ):
        self._session_factory = session_factory
        self.max_attempts = max(1, max_attempts)
        self._registry_factory = registry_factory

    # ─── Self-service ───────────────────────────────────────────

    async def join(
        self,
        event_id: EventId,
        user_id: UserId,
        departure_gate_id: GateId | None = None,
        arrival_gate_id: GateId | None = None,
    ) -> JoinResult:
        """Create the caller's participant row, binding requested or auto-picked gates."""
        ctx = ErrorContext(event_id=str(event_id), user_id=user_id)
        requested = {
            GateRole.DEPARTURE: departure_gate_id,
            GateRole.ARRIVAL: arrival_gate_id,
        }
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self._join_once(event_id, user_id, requested, ctx)
            except IntegrityError as e:
                if is_duplicate_membership(e):
                    raise AlreadyJoinedError(ctx)
                role = conflicting_gate_role(e)
                if role is None:
                    raise map_database_error(e, ctx)
                explicit = requested[role] is not None
                if explicit or attempt == self.max_attempts:
                    raise self._conflict(requested[role], role, ctx)
                logger.warning(
                    "Auto-assigned gate taken by a concurrent join, retrying",
                    extra={
                        "event_id": event_id, "user_id": user_id,
                        "role": role.value, "attempt": attempt,
                    },
                )
                continue
            logger.info(
                f"User joined event ({result.outcome.value} gate assignment)",
                extra={
                    "event_id": event_id, "user_id": user_id,
                    "participant_id": result.participant.id,
                    "outcome": result.outcome.value, "attempt": attempt,
                },
            )
            return result
        raise AssertionError("unreachable")  # pragma: no cover

    async def leave(self, event_id: EventId, user_id: UserId) -> None:
        """Delete the caller's participant row, releasing any gates it held."""
        ctx = ErrorContext(event_id=str(event_id), user_id=user_id)
        removed = await self._remove(event_id, user_id, ctx)
        if not removed:
            raise NotParticipantError(ctx)

    async def assign_gate(
        self, event_id: EventId, user_id: UserId, gate_id: GateId, role: GateRole,
    ) -> EventParticipant:
        """Select or move the caller's gate for one role."""
        ctx = ErrorContext(
            event_id=str(event_id), user_id=user_id,
            gate_id=str(gate_id), role=role.value,
        )
        return await self._assign(
            event_id, user_id, gate_id, role, ctx, implicit_join=False,
        )

    async def clear_gate(
        self, event_id: EventId, user_id: UserId, role: GateRole,
    ) -> EventParticipant:
        """Release the caller's gate for one role (no-op when unassigned)."""
        ctx = ErrorContext(event_id=str(event_id), user_id=user_id, role=role.value)
        return await self._clear(event_id, user_id, role, ctx)

    # ─── Staff ──────────────────────────────────────────────────

    async def admin_assign_gate(
        self,
        event_id: EventId,
        target_user_id: UserId,
        gate_id: GateId,
        role: GateRole,
        caller_roles: Iterable[str],
    ) -> EventParticipant:
        """Assign a gate on behalf of a pilot; joins the pilot if needed."""
        ctx = ErrorContext(
            event_id=str(event_id), user_id=target_user_id,
            gate_id=str(gate_id), role=role.value,
        )
        self._require_event_management(caller_roles, ctx)
        return await self._assign(
            event_id, target_user_id, gate_id, role, ctx, implicit_join=True,
        )

    async def admin_clear_gate(
        self,
        event_id: EventId,
        target_user_id: UserId,
        role: GateRole,
        caller_roles: Iterable[str],
    ) -> EventParticipant:
        ctx = ErrorContext(
            event_id=str(event_id), user_id=target_user_id, role=role.value,
        )
        self._require_event_management(caller_roles, ctx)
        return await self._clear(event_id, target_user_id, role, ctx)

    async def admin_remove_participant(
        self,
        event_id: EventId,
        target_user_id: UserId,
        caller_roles: Iterable[str],
    ) -> bool:
        """Remove a pilot from the event. Returns False if they had not joined."""
        ctx = ErrorContext(event_id=str(event_id), user_id=target_user_id)
        self._require_event_management(caller_roles, ctx)
        return await self._remove(event_id, target_user_id, ctx)

    # ─── Reads ──────────────────────────────────────────────────

    async def event_details(self, event_id: EventId) -> EventDetails:
        ctx = ErrorContext(event_id=str(event_id))
        async with self._transaction(ctx) as db:
            registry = self._registry_factory(db)
            event = await self._require_event(registry, event_id, ctx)
            return EventDetails(
                event=event,
                departure_gates=await registry.occupancy(event_id, GateRole.DEPARTURE),
                arrival_gates=await registry.occupancy(event_id, GateRole.ARRIVAL),
                participants=await registry.list_participants(event_id),
            )

    # ─── Internals ──────────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(
        self, ctx: ErrorContext,
    ) -> AsyncGenerator[AsyncSession, None]:
        """Session + transaction; commits on clean exit, rolls back on any error.

        IntegrityError propagates unchanged for classification by the caller.
        """
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    yield db
            except IntegrityError:
                raise
            except SQLAlchemyError as e:
                raise map_database_error(e, ctx)

    async def _join_once(
        self,
        event_id: EventId,
        user_id: UserId,
        requested: dict[GateRole, GateId | None],
        ctx: ErrorContext,
    ) -> JoinResult:
        async with self._transaction(ctx) as db:
            registry = self._registry_factory(db)
            event = await self._require_event(registry, event_id, ctx)
            if event.status != EventStatus.PUBLISHED.value:
                raise EventNotOpenError(event.status, ctx)
            await self._require_user(registry, user_id, ctx)
            if await registry.get_participant(event_id, user_id) is not None:
                raise AlreadyJoinedError(ctx)

            decisions: dict[GateRole, Decision] = {}
            for role in GateRole:
                snapshot = await registry.occupancy(event_id, role)
                decisions[role] = self._accept(
                    decide_assignment(snapshot, requested[role]), role, ctx,
                )
            slots = {role: decision_to_slot(d) for role, d in decisions.items()}

            now = _now()
            participant = EventParticipant(
                event_id=event_id,
                user_id=user_id,
                departure_gate_id=slot_to_column(slots[GateRole.DEPARTURE]),
                arrival_gate_id=slot_to_column(slots[GateRole.ARRIVAL]),
                joined_at=now,
                updated_at=now,
            )
            db.add(participant)
            await db.flush()

        return JoinResult(
            participant=participant,
            departure=decisions[GateRole.DEPARTURE],
            arrival=decisions[GateRole.ARRIVAL],
            outcome=summarize_outcome(
                slots[GateRole.DEPARTURE], slots[GateRole.ARRIVAL],
            ),
        )

    async def _assign(
        self,
        event_id: EventId,
        user_id: UserId,
        gate_id: GateId,
        role: GateRole,
        ctx: ErrorContext,
        implicit_join: bool,
    ) -> EventParticipant:
        for attempt in range(1, self.max_attempts + 1):
            try:
                participant, created = await self._assign_once(
                    event_id, user_id, gate_id, role, ctx, implicit_join,
                )
            except IntegrityError as e:
                if conflicting_gate_role(e) is not None:
                    raise self._conflict(gate_id, role, ctx)
                if not is_duplicate_membership(e):
                    raise map_database_error(e, ctx)
                if attempt == self.max_attempts:
                    raise AlreadyJoinedError(ctx)
                # The target joined concurrently; the next attempt updates their row.
                logger.warning(
                    "Implicit join raced with a self-service join, retrying",
                    extra={"event_id": event_id, "user_id": user_id, "attempt": attempt},
                )
                continue
            logger.info(
                "Participant joined by staff gate assignment" if created
                else "Gate assigned",
                extra={
                    "event_id": event_id, "user_id": user_id,
                    "gate_id": gate_id, "role": role.value,
                },
            )
            return participant
        raise AssertionError("unreachable")  # pragma: no cover

    async def _assign_once(
        self,
        event_id: EventId,
        user_id: UserId,
        gate_id: GateId,
        role: GateRole,
        ctx: ErrorContext,
        implicit_join: bool,
    ) -> tuple[EventParticipant, bool]:
        async with self._transaction(ctx) as db:
            registry = self._registry_factory(db)
            await self._require_event(registry, event_id, ctx)
            participant = await registry.get_participant(
                event_id, user_id, for_update=True,
            )
            if participant is None:
                if not implicit_join:
                    raise NotParticipantError(ctx)
                await self._require_user(registry, user_id, ctx)

            snapshot = await registry.occupancy(event_id, role)
            decision = self._accept(
                decide_assignment(
                    snapshot, gate_id,
                    exclude_participant_id=participant.id if participant else None,
                ),
                role, ctx,
            )
            bound_gate = slot_to_column(decision_to_slot(decision))

            now = _now()
            created = participant is None
            if created:
                participant = EventParticipant(
                    event_id=event_id, user_id=user_id,
                    joined_at=now, updated_at=now,
                )
                participant.set_gate(role, bound_gate)
                db.add(participant)
            else:
                participant.set_gate(role, bound_gate)
                participant.updated_at = now
            await db.flush()
        return participant, created

    async def _clear(
        self, event_id: EventId, user_id: UserId, role: GateRole, ctx: ErrorContext,
    ) -> EventParticipant:
        async with self._transaction(ctx) as db:
            registry = self._registry_factory(db)
            await self._require_event(registry, event_id, ctx)
            participant = await registry.get_participant(
                event_id, user_id, for_update=True,
            )
            if participant is None:
                raise NotParticipantError(ctx)
            released = participant.slot(role)
            if isinstance(released, Bound):
                participant.set_gate(role, None)
                participant.updated_at = _now()
                await db.flush()
        if isinstance(released, Bound):
            logger.info(
                "Gate released",
                extra={
                    "event_id": event_id, "user_id": user_id,
                    "gate_id": released.gate_id, "role": role.value,
                },
            )
        return participant

    async def _remove(
        self, event_id: EventId, user_id: UserId, ctx: ErrorContext,
    ) -> bool:
        async with self._transaction(ctx) as db:
            registry = self._registry_factory(db)
            await self._require_event(registry, event_id, ctx)
            participant = await registry.get_participant(
                event_id, user_id, for_update=True,
            )
            if participant is None:
                return False
            await db.delete(participant)
        logger.info(
            "Participant removed",
            extra={
                "event_id": event_id, "user_id": user_id,
                "participant_id": participant.id,
            },
        )
        return True

    async def _require_event(
        self, registry: GateReader, event_id: EventId, ctx: ErrorContext,
    ):
        event = await registry.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id), ctx)
        return event

    async def _require_user(
        self, registry: GateReader, user_id: UserId, ctx: ErrorContext,
    ) -> None:
        if await registry.get_user(user_id) is None:
            raise UserNotFoundError(user_id, ctx)

    @staticmethod
    def _require_event_management(
        caller_roles: Iterable[str], ctx: ErrorContext,
    ) -> None:
        if not has_event_management_capability(caller_roles):
            logger.warning(
                "Staff operation denied",
                extra={"event_id": ctx.event_id, "error_code": "ACCESS_DENIED"},
            )
            raise AccessDeniedError(EVENT_MANAGEMENT, ctx)

    def _accept(
        self, decision: Decision, role: GateRole, ctx: ErrorContext,
    ) -> Decision:
        """Pass successful decisions through; turn Unavailable into the matching error."""
        if not isinstance(decision, Unavailable):
            return decision
        if decision.reason == UnavailableReason.UNKNOWN_GATE:
            raise InvalidGateError(
                str(decision.gate_id), role.value,
                replace(ctx, gate_id=str(decision.gate_id), role=role.value),
            )
        raise self._conflict(decision.gate_id, role, ctx)

    @staticmethod
    def _conflict(
        gate_id: GateId | None, role: GateRole, ctx: ErrorContext,
    ) -> GateConflictError:
        logger.warning(
            "Gate conflict",
            extra={
                "event_id": ctx.event_id, "user_id": ctx.user_id,
                "gate_id": gate_id, "role": role.value,
                "error_code": "GATE_CONFLICT",
            },
        )
        gate = str(gate_id) if gate_id is not None else None
        return GateConflictError(
            gate, role.value, replace(ctx, gate_id=gate, role=role.value),
        )
