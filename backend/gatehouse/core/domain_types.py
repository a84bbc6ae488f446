"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - EventId, GateId, ParticipantId wrap UUIDs; UserId wraps the opaque auth id (str)
    - GateRole has exactly two members (departure, arrival)
    - GateSlot is the single vocabulary for a participant's per-role gate state:
      Unassigned or Bound(gate_id), persisted as a nullable column

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB columns without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, Union
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

EventId = NewType("EventId", UUID)
GateId = NewType("GateId", UUID)
ParticipantId = NewType("ParticipantId", UUID)
UserId = NewType("UserId", str)


# ─── Enums ───────────────────────────────────────────────────────

class GateRole(str, Enum):
    """Airport side a gate belongs to. Maps to `event_gates.airport_type`."""
    DEPARTURE = "departure"
    ARRIVAL = "arrival"


class EventStatus(str, Enum):
    """Event lifecycle states, owned by event management (read-only here)."""
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AssignmentOutcome(str, Enum):
    """How many gate roles ended up bound after a join."""
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"


# ─── Gate Slot (tagged value) ────────────────────────────────────

@dataclass(frozen=True)
class Unassigned:
    """No gate held for this role."""


@dataclass(frozen=True)
class Bound:
    """Gate held for this role."""
    gate_id: GateId


GateSlot = Union[Unassigned, Bound]


def slot_from_column(gate_id: UUID | None) -> GateSlot:
    """Lift a nullable gate column into a GateSlot."""
    return Bound(GateId(gate_id)) if gate_id is not None else Unassigned()


def slot_to_column(slot: GateSlot) -> UUID | None:
    """Lower a GateSlot into its nullable column value."""
    return slot.gate_id if isinstance(slot, Bound) else None
