"""Role Vocabulary & Capability Checks: the authorization guard for staff operations.

Invariants:
    - owner and admin grant every capability
    - The "events" staff role grants event management; no other staff role does
    - Role fields are parsed leniently: None, "admin", "[events, fleet]" are all valid
    - Pure functions: no IO, no DB
"""

from collections.abc import Iterable

OWNER_ROLE = "owner"
ADMIN_ROLE = "admin"
EVENTS_ROLE = "events"

AVAILABLE_ROLES = (
    "pireps", "fleet", "routes", EVENTS_ROLE, "users", "multipliers", "ranks",
)
ALL_ROLES = (OWNER_ROLE, ADMIN_ROLE, *AVAILABLE_ROLES)

EVENT_MANAGEMENT = "event_management"


def parse_roles_field(role_field: str | None) -> frozenset[str]:
    """Parse the stored `users.role` text into a role set."""
    if not role_field or not role_field.strip():
        return frozenset()
    trimmed = role_field.strip()
    if trimmed.startswith("[") and trimmed.endswith("]"):
        return frozenset(
            r.strip() for r in trimmed[1:-1].split(",") if r.strip()
        )
    return frozenset({trimmed})


def stringify_roles(roles: Iterable[str]) -> str:
    roles = list(roles)
    if not roles:
        return ""
    return f"[{', '.join(roles)}]"


def has_required_role(user_roles: Iterable[str] | None, required: Iterable[str]) -> bool:
    """True when the user is owner/admin or holds any of the required roles."""
    if not user_roles:
        return False
    normalized = set(user_roles)
    if ADMIN_ROLE in normalized or OWNER_ROLE in normalized:
        return True
    return any(role in normalized for role in required)


def has_event_management_capability(caller_roles: Iterable[str] | None) -> bool:
    return has_required_role(caller_roles, (EVENTS_ROLE,))
