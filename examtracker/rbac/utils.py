"""
RBAC utility functions for the session user's role
"""
from flask import session
from typing import Optional

from examtracker.rbac.roles import Role
from examtracker.rbac.permissions import get_ui_features_for_role


def get_user_role(uid: Optional[str] = None) -> str:
    """
    Get the role of a user.

    Args:
        uid: Optional user id. If not provided, uses the session user.

    Returns:
        User role as string; guest when nobody is signed in
    """
    if uid is None:
        uid = session.get('user_id')
        if not uid:
            return Role.GUEST.value

    from examtracker.models import UserModel
    return UserModel(uid).get_role()


def get_ui_features(uid: Optional[str] = None) -> dict[str, bool]:
    """UI feature visibility for the current (or given) user"""
    return get_ui_features_for_role(get_user_role(uid))


def get_role_display_name(role: Role | str) -> str:
    """
    Get display name for a role.

    Args:
        role: Role enum or role string

    Returns:
        Capitalized role name, 'Unknown' for anything outside the fixed set
    """
    parsed = Role.parse(role)
    if parsed is None:
        return 'Unknown'
    return parsed.value.capitalize()
