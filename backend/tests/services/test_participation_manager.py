"""Participation Manager: self-service join, leave, gate selection, and clearing.

Invariants:
    - join auto-assigns the first free gate per role; explicit requests never fall back
    - an explicit conflict aborts the whole join (no row, no gates held)
    - exhaustion joins without that gate (null), not an error
    - leave releases gates immediately
    - assign_gate moves a participant in one step and may re-select its own gate
"""

from uuid import uuid4

import pytest

from gatehouse.core.allocate_gates import AutoAssigned, NoneAvailable
from gatehouse.core.domain_types import (
    AssignmentOutcome, Bound, EventId, GateId, GateRole, Unassigned,
)
from gatehouse.core.errors import (
    AlreadyJoinedError,
    EventNotFoundError,
    EventNotOpenError,
    GateConflictError,
    InvalidGateError,
    NotParticipantError,
    UserNotFoundError,
)


# ─── join ────────────────────────────────────────────────────────

async def test_join_without_request_auto_assigns_first_gates(manager, event):
    result = await manager.join(event.id, "p1")

    assert result.participant.departure_gate_id == event.gate("A1")
    assert result.participant.arrival_gate_id == event.gate("B1")
    assert result.departure == AutoAssigned(event.gate("A1"))
    assert result.arrival == AutoAssigned(event.gate("B1"))
    assert result.outcome == AssignmentOutcome.FULL
    assert result.was_auto_assigned(GateRole.DEPARTURE)


async def test_join_with_explicit_gates_binds_them(manager, event):
    result = await manager.join(
        event.id, "p1",
        departure_gate_id=event.gate("A2"), arrival_gate_id=event.gate("B2"),
    )
    assert result.departure == Bound(event.gate("A2"))
    assert result.arrival == Bound(event.gate("B2"))
    assert not result.was_auto_assigned(GateRole.ARRIVAL)


async def test_join_mixes_explicit_and_auto_per_role(manager, event):
    result = await manager.join(event.id, "p1", arrival_gate_id=event.gate("B2"))
    assert result.participant.departure_gate_id == event.gate("A1")
    assert result.participant.arrival_gate_id == event.gate("B2")


async def test_join_explicit_conflict_aborts_whole_join(manager, event, seed):
    await manager.join(event.id, "p1")

    with pytest.raises(GateConflictError) as exc:
        await manager.join(
            event.id, "p2",
            departure_gate_id=event.gate("A1"), arrival_gate_id=event.gate("B2"),
        )

    assert exc.value.retryable
    assert "p2" not in await seed.participants(event.id)


async def test_join_with_gate_of_wrong_role_is_invalid(manager, event, seed):
    with pytest.raises(InvalidGateError):
        await manager.join(event.id, "p1", departure_gate_id=event.gate("B1"))
    assert await seed.participants(event.id) == {}


async def test_join_with_gate_of_another_event_is_invalid(manager, event, seed):
    other = await seed.event(departure=("Z1",), arrival=())
    with pytest.raises(InvalidGateError):
        await manager.join(event.id, "p1", departure_gate_id=other.gate("Z1"))


async def test_join_when_all_gates_taken_succeeds_without_gates(manager, event):
    await manager.join(event.id, "p1")
    await manager.join(event.id, "p2")

    result = await manager.join(event.id, "p3")

    assert result.participant.departure_gate_id is None
    assert result.participant.arrival_gate_id is None
    assert result.departure == NoneAvailable()
    assert result.outcome == AssignmentOutcome.NONE


async def test_join_partial_outcome_when_one_role_exhausted(manager, seed):
    await seed.users("p1", "p2")
    single = await seed.event(departure=("A1",), arrival=("B1", "B2"))
    await manager.join(single.id, "p1")

    result = await manager.join(single.id, "p2")

    assert result.participant.departure_gate_id is None
    assert result.participant.arrival_gate_id == single.gate("B2")
    assert result.outcome == AssignmentOutcome.PARTIAL


async def test_join_event_without_gates(manager, seed):
    await seed.users("p1")
    bare = await seed.event(departure=(), arrival=())
    result = await manager.join(bare.id, "p1")
    assert result.outcome == AssignmentOutcome.NONE


async def test_join_twice_raises_already_joined(manager, event):
    await manager.join(event.id, "p1")
    with pytest.raises(AlreadyJoinedError):
        await manager.join(event.id, "p1")


async def test_join_unknown_event_raises(manager):
    with pytest.raises(EventNotFoundError):
        await manager.join(EventId(uuid4()), "p1")


async def test_join_unknown_user_raises(manager, event, seed):
    with pytest.raises(UserNotFoundError) as exc:
        await manager.join(event.id, "ghost")
    assert exc.value.http_status == 404
    assert exc.value.user_id == "ghost"
    assert await seed.participants(event.id) == {}


@pytest.mark.parametrize("status", ["draft", "cancelled", "completed"])
async def test_join_unpublished_event_raises(manager, seed, status):
    draft = await seed.event(status=status)
    with pytest.raises(EventNotOpenError):
        await manager.join(draft.id, "p1")


# ─── leave ───────────────────────────────────────────────────────

async def test_leave_releases_gates_for_next_join(manager, event):
    await manager.join(event.id, "p1")
    await manager.leave(event.id, "p1")

    result = await manager.join(
        event.id, "p2",
        departure_gate_id=event.gate("A1"), arrival_gate_id=event.gate("B1"),
    )
    assert result.outcome == AssignmentOutcome.FULL


async def test_leave_deletes_row(manager, event, seed):
    await manager.join(event.id, "p1")
    await manager.leave(event.id, "p1")
    assert await seed.participants(event.id) == {}


async def test_leave_when_not_joined_raises(manager, event):
    with pytest.raises(NotParticipantError):
        await manager.leave(event.id, "p1")


async def test_leave_unknown_event_raises(manager):
    with pytest.raises(EventNotFoundError):
        await manager.leave(EventId(uuid4()), "p1")


# ─── assign_gate ─────────────────────────────────────────────────

async def test_assign_gate_moves_participant(manager, event, seed):
    await manager.join(event.id, "p1")

    participant = await manager.assign_gate(
        event.id, "p1", event.gate("A2"), GateRole.DEPARTURE,
    )

    assert participant.departure_gate_id == event.gate("A2")
    assert participant.arrival_gate_id == event.gate("B1")
    stored = (await seed.participants(event.id))["p1"]
    assert stored.departure_gate_id == event.gate("A2")


async def test_assign_gate_releases_previous_gate(manager, event):
    await manager.join(event.id, "p1")
    await manager.assign_gate(event.id, "p1", event.gate("A2"), GateRole.DEPARTURE)

    result = await manager.join(event.id, "p2")

    assert result.participant.departure_gate_id == event.gate("A1")


async def test_assign_gate_to_own_gate_is_a_noop(manager, event):
    await manager.join(event.id, "p1")
    participant = await manager.assign_gate(
        event.id, "p1", event.gate("A1"), GateRole.DEPARTURE,
    )
    assert participant.departure_gate_id == event.gate("A1")


async def test_assign_gate_held_by_other_conflicts(manager, event, seed):
    await manager.join(event.id, "p1")
    await manager.join(event.id, "p2")

    with pytest.raises(GateConflictError):
        await manager.assign_gate(event.id, "p2", event.gate("A1"), GateRole.DEPARTURE)

    rows = await seed.participants(event.id)
    assert rows["p1"].departure_gate_id == event.gate("A1")
    assert rows["p2"].departure_gate_id == event.gate("A2")


async def test_assign_gate_with_wrong_role_is_invalid(manager, event):
    await manager.join(event.id, "p1")
    with pytest.raises(InvalidGateError):
        await manager.assign_gate(event.id, "p1", event.gate("B2"), GateRole.DEPARTURE)


async def test_assign_unknown_gate_is_invalid(manager, event):
    await manager.join(event.id, "p1")
    with pytest.raises(InvalidGateError):
        await manager.assign_gate(event.id, "p1", GateId(uuid4()), GateRole.ARRIVAL)


async def test_assign_gate_when_not_joined_raises(manager, event, seed):
    with pytest.raises(NotParticipantError):
        await manager.assign_gate(event.id, "p1", event.gate("A1"), GateRole.DEPARTURE)
    assert await seed.participants(event.id) == {}


async def test_assign_gate_only_touches_requested_role(manager, event):
    await manager.join(event.id, "p1", departure_gate_id=event.gate("A2"))
    participant = await manager.assign_gate(
        event.id, "p1", event.gate("B2"), GateRole.ARRIVAL,
    )
    assert participant.departure_gate_id == event.gate("A2")
    assert participant.arrival_gate_id == event.gate("B2")


# ─── clear_gate ──────────────────────────────────────────────────

async def test_clear_gate_unassigns_role(manager, event):
    await manager.join(event.id, "p1")

    participant = await manager.clear_gate(event.id, "p1", GateRole.ARRIVAL)

    assert participant.slot(GateRole.ARRIVAL) == Unassigned()
    assert participant.slot(GateRole.DEPARTURE) == Bound(event.gate("A1"))


async def test_cleared_gate_is_assignable_to_others(manager, event):
    await manager.join(event.id, "p1")
    await manager.clear_gate(event.id, "p1", GateRole.DEPARTURE)
    await manager.join(event.id, "p2")

    participant = await manager.assign_gate(
        event.id, "p2", event.gate("A1"), GateRole.DEPARTURE,
    )
    assert participant.departure_gate_id == event.gate("A1")


async def test_clear_unassigned_gate_is_noop(manager, event):
    await manager.join(event.id, "p1")
    await manager.clear_gate(event.id, "p1", GateRole.DEPARTURE)
    participant = await manager.clear_gate(event.id, "p1", GateRole.DEPARTURE)
    assert participant.departure_gate_id is None


async def test_clear_gate_when_not_joined_raises(manager, event):
    with pytest.raises(NotParticipantError):
        await manager.clear_gate(event.id, "p1", GateRole.ARRIVAL)


# ─── event_details ───────────────────────────────────────────────

async def test_event_details_reports_occupancy(manager, event):
    joined = await manager.join(event.id, "p1")

    details = await manager.event_details(event.id)

    assert [g.label for g in details.departure_gates] == ["A1", "A2"]
    assert details.departure_gates[0].occupant_id == joined.participant.id
    assert details.departure_gates[1].is_free
    assert [p.user_id for p in details.participants] == ["p1"]


async def test_event_details_unknown_event_raises(manager):
    with pytest.raises(EventNotFoundError):
        await manager.event_details(EventId(uuid4()))
