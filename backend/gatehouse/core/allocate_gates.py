"""Gate Allocation Engine: decides which gate (if any) a participant binds for one role.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - A snapshot covers exactly one (event, role); gates outside it are unknown
    - Explicit requests never fall back to another gate (pilot intent preserved)
    - Automatic mode picks the first free gate by (label, id) ascending
    - Same snapshot + same request -> same decision, regardless of input order
    - Departure and arrival are decided independently (one call per role)

Design Decisions:
    - Decisions are small frozen dataclasses, not exceptions: the manager maps
      Unavailable to InvalidGateError / GateConflictError and treats
      NoneAvailable as a successful join without that gate
    - Bound is shared with domain_types.GateSlot so decisions and stored state
      use one vocabulary
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from gatehouse.core.domain_types import (
    AssignmentOutcome, Bound, GateId, GateRole, GateSlot, ParticipantId, Unassigned,
)


@dataclass(frozen=True)
class GateOccupancy:
    """One gate of an event/role and its current occupant (None if free)."""
    gate_id: GateId
    label: str
    role: GateRole
    occupant_id: ParticipantId | None = None

    @property
    def is_free(self) -> bool:
        return self.occupant_id is None


class UnavailableReason(str, Enum):
    UNKNOWN_GATE = "unknown_gate"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class Unavailable:
    """Explicitly requested gate cannot be bound."""
    gate_id: GateId
    reason: UnavailableReason


@dataclass(frozen=True)
class AutoAssigned:
    """Automatic mode found a free gate."""
    gate_id: GateId


@dataclass(frozen=True)
class NoneAvailable:
    """Automatic mode found no free gate. Not an error."""


Decision = Union[Bound, Unavailable, AutoAssigned, NoneAvailable]


def ordered(snapshot: list[GateOccupancy]) -> list[GateOccupancy]:
    """Stable gate order: label ascending, gate id as tie-break."""
    return sorted(snapshot, key=lambda g: (g.label, str(g.gate_id)))


def decide_assignment(
    snapshot: list[GateOccupancy],
    requested_gate_id: GateId | None = None,
    *,
    exclude_participant_id: ParticipantId | None = None,
) -> Decision:
    """Decide the binding for one role.

    exclude_participant_id treats that participant's own occupancy as free, so
    a participant can re-select the gate they already hold.
    """
    def _free(gate: GateOccupancy) -> bool:
        return gate.is_free or (
            exclude_participant_id is not None
            and gate.occupant_id == exclude_participant_id
        )

    if requested_gate_id is not None:
        gate = next(
            (g for g in snapshot if g.gate_id == requested_gate_id), None,
        )
        if gate is None:
            return Unavailable(requested_gate_id, UnavailableReason.UNKNOWN_GATE)
        if not _free(gate):
            return Unavailable(requested_gate_id, UnavailableReason.OCCUPIED)
        return Bound(gate.gate_id)

    for gate in ordered(snapshot):
        if _free(gate):
            return AutoAssigned(gate.gate_id)
    return NoneAvailable()


def decision_to_slot(decision: Decision) -> GateSlot:
    """Map a successful decision to the slot that gets persisted."""
    if isinstance(decision, Bound):
        return decision
    if isinstance(decision, AutoAssigned):
        return Bound(decision.gate_id)
    if isinstance(decision, NoneAvailable):
        return Unassigned()
    raise ValueError(f"Unavailable decision has no slot: {decision!r}")


def summarize_outcome(departure: GateSlot, arrival: GateSlot) -> AssignmentOutcome:
    """Three-way join result: no gate, one role bound, both roles bound."""
    bound = sum(isinstance(s, Bound) for s in (departure, arrival))
    if bound == 2:
        return AssignmentOutcome.FULL
    if bound == 1:
        return AssignmentOutcome.PARTIAL
    return AssignmentOutcome.NONE
