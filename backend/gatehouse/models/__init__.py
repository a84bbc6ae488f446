"""ORM Models: SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Event is the aggregate root; gates and participants are scoped by event_id

Design Decisions:
    - One file per entity
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from gatehouse.models.user import User  # noqa: F401
from gatehouse.models.event import Event  # noqa: F401
from gatehouse.models.event_gate import EventGate  # noqa: F401
from gatehouse.models.event_participant import EventParticipant  # noqa: F401
