"""User ORM: read-only view of the pilot/staff accounts owned by user management.

Invariants:
    - id is the opaque auth identifier (text), not generated here
    - role is nullable text in the "[a, b]" list format (see core/roles.py)
    - Gatehouse never writes users; it reads role to resolve caller capabilities
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.db.base import Base


class User(Base):
    """Pilot or staff account."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    callsign: Mapped[int | None] = mapped_column(
        Integer, nullable=True, unique=True,
    )
    role: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
