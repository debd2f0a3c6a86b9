"""Role to capability mapping for owner and moderator accounts."""

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    """Staff roles."""
    OWNER = "owner"
    MODERATOR = "moderator"


class Capability(str, Enum):
    """Actions gated per role."""
    MANAGE_POSTS = "manage_posts"
    HARD_DELETE_POSTS = "hard_delete_posts"
    MANAGE_USERS = "manage_users"
    MANAGE_CATEGORIES = "manage_categories"
    VIEW_STATISTICS = "view_statistics"
    VIEW_SYSTEM_ACTIVITY = "view_system_activity"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.OWNER: frozenset(Capability),
    Role.MODERATOR: frozenset({Capability.MANAGE_POSTS}),
}


def has_capability(role: str, capability: Capability) -> bool:
    """Return True when ``role`` grants ``capability``. Unknown roles grant nothing."""
    try:
        return capability in ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return False


__all__ = ["Role", "Capability", "ROLE_CAPABILITIES", "has_capability"]
