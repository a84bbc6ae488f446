"""Participation Schemas: Pydantic models for the event participation endpoints.

Invariants:
    - Gate and event ids are UUIDs; malformed ids fail validation (400) before any DB work
    - Responses expose nullable gate ids; null means "no gate of that role held"
    - JoinEventResponse.assignment carries the none/partial/full outcome
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from gatehouse.core.domain_types import AssignmentOutcome, GateRole


class JoinEventRequest(BaseModel):
    """Join body. Omitted gate ids are auto-assigned when a gate is free."""
    model_config = ConfigDict(extra="forbid")

    departure_gate_id: UUID | None = None
    arrival_gate_id: UUID | None = None


class AssignGateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gate_id: UUID


class JoinEventResponse(BaseModel):
    participant_id: UUID
    departure_gate_id: UUID | None
    arrival_gate_id: UUID | None
    assignment: AssignmentOutcome
    message: str


class GateAssignmentResponse(BaseModel):
    participant_id: UUID
    role: GateRole
    gate_id: UUID | None


class StatusResponse(BaseModel):
    status: str = "ok"


class RemoveParticipantResponse(StatusResponse):
    removed: bool


class GateResponse(BaseModel):
    id: UUID
    gate_number: str
    role: GateRole
    occupant_participant_id: UUID | None


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    departure_gate_id: UUID | None
    arrival_gate_id: UUID | None
    joined_at: datetime
    updated_at: datetime


class EventDetailsResponse(BaseModel):
    id: UUID
    title: str
    status: str
    departure_gates: list[GateResponse]
    arrival_gates: list[GateResponse]
    participants: list[ParticipantResponse]
