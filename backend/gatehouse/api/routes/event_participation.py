"""Event Participation Routes: join/leave, gate selection, and staff overrides.

Invariants:
    - Routes never contain allocation logic: they delegate to ParticipationManager
    - Domain errors propagate to the global GatehouseError handler (structured envelope)
    - Staff routes resolve caller roles before calling admin_* operations
    - "me" routes act on the X-User-Id caller; {target_user_id} routes are staff-only
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from gatehouse.api.dependencies import (
    get_caller_id, get_caller_roles, get_participation_manager,
)
from gatehouse.core.allocate_gates import GateOccupancy
from gatehouse.core.domain_types import (
    AssignmentOutcome, EventId, GateId, GateRole, UserId,
)
from gatehouse.schemas.participation import (
    AssignGateRequest,
    EventDetailsResponse,
    GateAssignmentResponse,
    GateResponse,
    JoinEventRequest,
    JoinEventResponse,
    ParticipantResponse,
    RemoveParticipantResponse,
    StatusResponse,
)
from gatehouse.services.participation_manager import (
    JoinResult, ParticipationManager,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/events", tags=["events"])


def _join_message(result: JoinResult, body: JoinEventRequest) -> str:
    """Human-readable join summary for the three-way assignment outcome."""
    selected = []
    if body.departure_gate_id:
        selected.append("departure gate selected")
    if body.arrival_gate_id:
        selected.append("arrival gate selected")
    if selected:
        return f"Successfully joined event with {' and '.join(selected)}"
    if result.outcome == AssignmentOutcome.NONE:
        return "Successfully joined event (no gates available for automatic assignment)"
    if result.outcome == AssignmentOutcome.PARTIAL:
        return "Successfully joined event (some gates were automatically assigned)"
    return "Successfully joined event with automatic gate assignment"


def _gate_response(gate: GateOccupancy) -> GateResponse:
    return GateResponse(
        id=gate.gate_id,
        gate_number=gate.label,
        role=gate.role,
        occupant_participant_id=gate.occupant_id,
    )


def _assignment_response(participant, role: GateRole) -> GateAssignmentResponse:
    return GateAssignmentResponse(
        participant_id=participant.id, role=role,
        gate_id=participant.gate_id_for(role),
    )


@router.get("/{event_id}", response_model=EventDetailsResponse)
async def get_event_details(
    event_id: UUID,
    _caller: UserId = Depends(get_caller_id),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    """Event gates with their occupants, plus the participant list."""
    details = await manager.event_details(EventId(event_id))
    return EventDetailsResponse(
        id=details.event.id,
        title=details.event.title,
        status=details.event.status,
        departure_gates=[_gate_response(g) for g in details.departure_gates],
        arrival_gates=[_gate_response(g) for g in details.arrival_gates],
        participants=[
            ParticipantResponse.model_validate(p) for p in details.participants
        ],
    )


@router.post(
    "/{event_id}/participants",
    response_model=JoinEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_event(
    event_id: UUID,
    body: JoinEventRequest,
    caller: UserId = Depends(get_caller_id),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    """Join an event, optionally choosing gates; free gates are auto-assigned otherwise."""
    result = await manager.join(
        EventId(event_id), caller,
        departure_gate_id=GateId(body.departure_gate_id) if body.departure_gate_id else None,
        arrival_gate_id=GateId(body.arrival_gate_id) if body.arrival_gate_id else None,
    )
    return JoinEventResponse(
        participant_id=result.participant.id,
        departure_gate_id=result.participant.departure_gate_id,
        arrival_gate_id=result.participant.arrival_gate_id,
        assignment=result.outcome,
        message=_join_message(result, body),
    )


@router.delete("/{event_id}/participants/me", response_model=StatusResponse)
async def leave_event(
    event_id: UUID,
    caller: UserId = Depends(get_caller_id),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    await manager.leave(EventId(event_id), caller)
    return StatusResponse()


@router.put(
    "/{event_id}/participants/me/gates/{role}",
    response_model=GateAssignmentResponse,
)
async def assign_own_gate(
    event_id: UUID,
    role: GateRole,
    body: AssignGateRequest,
    caller: UserId = Depends(get_caller_id),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    participant = await manager.assign_gate(
        EventId(event_id), caller, GateId(body.gate_id), role,
    )
    return _assignment_response(participant, role)


@router.delete(
    "/{event_id}/participants/me/gates/{role}",
    response_model=GateAssignmentResponse,
)
async def clear_own_gate(
    event_id: UUID,
    role: GateRole,
    caller: UserId = Depends(get_caller_id),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    participant = await manager.clear_gate(EventId(event_id), caller, role)
    return _assignment_response(participant, role)


# ─── Staff ──────────────────────────────────────────────────────

@router.put(
    "/{event_id}/participants/{target_user_id}/gates/{role}",
    response_model=GateAssignmentResponse,
)
async def admin_assign_gate(
    event_id: UUID,
    target_user_id: str,
    role: GateRole,
    body: AssignGateRequest,
    caller_roles: frozenset[str] = Depends(get_caller_roles),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    """Staff gate assignment; joins the target pilot if they have not joined."""
    participant = await manager.admin_assign_gate(
        EventId(event_id), UserId(target_user_id), GateId(body.gate_id), role,
        caller_roles,
    )
    return _assignment_response(participant, role)


@router.delete(
    "/{event_id}/participants/{target_user_id}/gates/{role}",
    response_model=GateAssignmentResponse,
)
async def admin_clear_gate(
    event_id: UUID,
    target_user_id: str,
    role: GateRole,
    caller_roles: frozenset[str] = Depends(get_caller_roles),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    participant = await manager.admin_clear_gate(
        EventId(event_id), UserId(target_user_id), role, caller_roles,
    )
    return _assignment_response(participant, role)


@router.delete(
    "/{event_id}/participants/{target_user_id}",
    response_model=RemoveParticipantResponse,
)
async def admin_remove_participant(
    event_id: UUID,
    target_user_id: str,
    caller_roles: frozenset[str] = Depends(get_caller_roles),
    manager: ParticipationManager = Depends(get_participation_manager),
):
    removed = await manager.admin_remove_participant(
        EventId(event_id), UserId(target_user_id), caller_roles,
    )
    return RemoveParticipantResponse(removed=removed)
