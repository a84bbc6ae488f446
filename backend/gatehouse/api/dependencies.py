"""API Dependencies: caller identity, caller roles, and the ParticipationManager.

Invariants:
    - The caller is identified by the X-User-Id header; authentication happens upstream
    - Caller roles are resolved per request from users.role (never cached)
    - One ParticipationManager per process, bound to db_manager's session factory

Design Decisions:
    - Header identity over session cookies: the auth layer sits in front of this API
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.config import get_settings
from gatehouse.core.domain_types import UserId
from gatehouse.core.repository_protocols import RoleResolver
from gatehouse.infrastructure.database import get_db, get_db_manager
from gatehouse.services.participation_manager import ParticipationManager
from gatehouse.services.role_resolver import SqlRoleResolver


async def get_caller_id(
    x_user_id: str = Header(..., min_length=1, max_length=64),
) -> UserId:
    return UserId(x_user_id)


def get_role_resolver(db: AsyncSession = Depends(get_db)) -> RoleResolver:
    return SqlRoleResolver(db)


async def get_caller_roles(
    caller_id: UserId = Depends(get_caller_id),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> frozenset[str]:
    return await resolver.get_user_roles(caller_id)


@lru_cache
def _manager() -> ParticipationManager:
    return ParticipationManager(
        get_db_manager().session_factory,
        max_attempts=get_settings().auto_assign_max_attempts,
    )


def get_participation_manager() -> ParticipationManager:
    """FastAPI dependency for the process-wide ParticipationManager."""
    return _manager()
