"""Role Resolver: implements `GetUserRoles` by reading `users.role`.

Invariants:
    - Unknown users resolve to an empty role set (never raises)
    - Read-only
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.domain_types import UserId
from gatehouse.core.roles import parse_roles_field
from gatehouse.models.user import User


class SqlRoleResolver:
    """RoleResolver backed by the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_roles(self, user_id: UserId) -> frozenset[str]:
        result = await self.db.execute(
            select(User.role).where(User.id == user_id),
        )
        return parse_roles_field(result.scalar_one_or_none())
