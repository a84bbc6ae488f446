"""Tests for GateRegistry: event lookup, gate lists, occupancy snapshots.

Tests cover:
    - get_event returns None for unknown ids
    - list_gates filters by role and orders by label
    - occupancy pairs each gate with its holder and scopes to one (event, role)
    - get_participant / list_participants / get_user
"""

from uuid import uuid4

from gatehouse.core.domain_types import EventId, GateRole
from gatehouse.services.gate_registry import GateRegistry


async def test_get_event_unknown_returns_none(test_session_factory):
    async with test_session_factory() as db:
        assert await GateRegistry(db).get_event(EventId(uuid4())) is None


async def test_get_event_returns_row(test_session_factory, event):
    async with test_session_factory() as db:
        found = await GateRegistry(db).get_event(event.id)
    assert found.id == event.id
    assert found.status == "published"


async def test_list_gates_by_role(test_session_factory, seed):
    seeded = await seed.event(departure=("A3", "A1", "A2"), arrival=("B1",))
    async with test_session_factory() as db:
        registry = GateRegistry(db)
        departure = await registry.list_gates(seeded.id, GateRole.DEPARTURE)
        every = await registry.list_gates(seeded.id)

    assert [g.gate_number for g in departure] == ["A1", "A2", "A3"]
    assert len(every) == 4


async def test_occupancy_all_free_initially(test_session_factory, event):
    async with test_session_factory() as db:
        snapshot = await GateRegistry(db).occupancy(event.id, GateRole.ARRIVAL)

    assert [g.label for g in snapshot] == ["B1", "B2"]
    assert all(g.is_free for g in snapshot)
    assert all(g.role == GateRole.ARRIVAL for g in snapshot)


async def test_occupancy_reports_holder(test_session_factory, manager, event):
    joined = await manager.join(event.id, "p1", departure_gate_id=event.gate("A2"))

    async with test_session_factory() as db:
        snapshot = await GateRegistry(db).occupancy(event.id, GateRole.DEPARTURE)

    by_label = {g.label: g for g in snapshot}
    assert by_label["A1"].is_free
    assert by_label["A2"].occupant_id == joined.participant.id


async def test_occupancy_is_scoped_to_event(test_session_factory, manager, seed, event):
    other = await seed.event(departure=("A1",), arrival=())
    await manager.join(event.id, "p1")

    async with test_session_factory() as db:
        snapshot = await GateRegistry(db).occupancy(other.id, GateRole.DEPARTURE)

    assert [g.gate_id for g in snapshot] == [other.gate("A1")]
    assert snapshot[0].is_free


async def test_get_participant(test_session_factory, manager, event):
    await manager.join(event.id, "p1")

    async with test_session_factory() as db:
        registry = GateRegistry(db)
        found = await registry.get_participant(event.id, "p1", for_update=True)
        missing = await registry.get_participant(event.id, "p2")

    assert found.user_id == "p1"
    assert missing is None


async def test_list_participants(test_session_factory, manager, event):
    await manager.join(event.id, "p1")
    await manager.join(event.id, "p2")

    async with test_session_factory() as db:
        participants = await GateRegistry(db).list_participants(event.id)

    assert {p.user_id for p in participants} == {"p1", "p2"}


async def test_get_user(test_session_factory, event):
    async with test_session_factory() as db:
        registry = GateRegistry(db)
        staff = await registry.get_user("staff")
        missing = await registry.get_user("ghost")

    assert staff.role == "[events]"
    assert missing is None
