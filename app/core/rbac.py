"""
Role definitions for PPMKFriends.

Roles form a closed, ordered set: member < admin < superadmin.
A user holds exactly one role row; assigning a new role replaces the old one.
"""

from enum import Enum
from typing import Dict, Optional


class AppRole(str, Enum):
    """Application roles stored in user_roles.role and invited_credentials.role."""
    MEMBER = "member"  # Regular association member
    ADMIN = "admin"  # Admin panel access, bulk import, user management
    SUPERADMIN = "superadmin"  # Admin plus invited credential management


DEFAULT_ROLE = AppRole.MEMBER

# Higher rank includes every capability of the lower ranks
ROLE_RANK: Dict[AppRole, int] = {
    AppRole.MEMBER: 0,
    AppRole.ADMIN: 1,
    AppRole.SUPERADMIN: 2,
}

ROLE_METADATA: Dict[AppRole, Dict[str, str]] = {
    AppRole.MEMBER: {
        "display_name": "Member",
        "description": "Association member with access to the feed, communities and marketplace.",
    },
    AppRole.ADMIN: {
        "display_name": "Administrator",
        "description": "Manages member accounts, profiles, roles and bulk imports.",
    },
    AppRole.SUPERADMIN: {
        "display_name": "Super Administrator",
        "description": "Full administrative access including invited credentials.",
    },
}


def parse_role(value: Optional[str]) -> AppRole:
    """
    Parse a role string into an AppRole.

    Blank or missing values resolve to the default role. Unknown values raise
    ValueError, since the role drives authorization.
    """
    if value is None or not str(value).strip():
        return DEFAULT_ROLE
    normalized = str(value).strip().lower()
    try:
        return AppRole(normalized)
    except ValueError:
        allowed = ", ".join(r.value for r in AppRole)
        raise ValueError(f"Invalid role '{value}'. Expected one of: {allowed}")


def has_role_at_least(role: Optional[AppRole], required: AppRole) -> bool:
    """Check whether role meets or exceeds the required role."""
    if role is None:
        return False
    return ROLE_RANK[role] >= ROLE_RANK[required]
