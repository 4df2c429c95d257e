"""
Capability definitions for RBAC system

Each capability is granted to a fixed set of roles. Protected route prefixes
resolve onto the area capabilities, so the same table decides both named
permission checks and route access.
"""
from enum import Enum
from typing import Optional, Set
from examtracker.rbac.roles import Role


class Capability(str, Enum):
    """Available capabilities in the system"""
    ACCESS_STUDENT_AREA = "access_student_area"
    ACCESS_ADVANCED_AREA = "access_advanced_area"
    ACCESS_TEACHER_AREA = "access_teacher_area"
    ACCESS_ADMIN_AREA = "access_admin_area"
    MANAGE_USERS = "manage_users"
    MODERATE_CONTENT = "moderate_content"
    CONNECT_TO_STUDENTS = "connect_to_students"
    SEND_DIRECT_MESSAGES = "send_direct_messages"

    def __str__(self):
        return self.value


# Roles permitted for each capability
CAPABILITY_ROLES: dict[Capability, frozenset[Role]] = {
    Capability.ACCESS_STUDENT_AREA: frozenset({Role.STUDENT, Role.ADVANCED, Role.TEACHER, Role.ADMIN}),
    Capability.ACCESS_ADVANCED_AREA: frozenset({Role.ADVANCED, Role.TEACHER, Role.ADMIN}),
    Capability.ACCESS_TEACHER_AREA: frozenset({Role.TEACHER, Role.ADMIN}),
    Capability.ACCESS_ADMIN_AREA: frozenset({Role.ADMIN}),
    Capability.MANAGE_USERS: frozenset({Role.ADMIN}),
    Capability.MODERATE_CONTENT: frozenset({Role.TEACHER, Role.ADMIN}),
    Capability.CONNECT_TO_STUDENTS: frozenset({Role.TEACHER, Role.ADMIN}),
    Capability.SEND_DIRECT_MESSAGES: frozenset({Role.TEACHER, Role.ADMIN}),
}

# Protected route prefixes
ROUTE_CAPABILITIES: dict[str, Capability] = {
    '/student': Capability.ACCESS_STUDENT_AREA,
    '/advanced': Capability.ACCESS_ADVANCED_AREA,
    '/teacher': Capability.ACCESS_TEACHER_AREA,
    '/admin': Capability.ACCESS_ADMIN_AREA,
}


def capability_for_route(path: str) -> Optional[Capability]:
    """
    Find the capability guarding a route path.

    A path matches a prefix when it is the prefix itself or lies below it,
    so '/administrator' is not treated as part of '/admin'.

    Returns:
        The guarding capability, or None when the path is not protected
    """
    if not path.startswith('/'):
        return None
    normalized = path.rstrip('/') or '/'
    for prefix, capability in ROUTE_CAPABILITIES.items():
        if normalized == prefix or normalized.startswith(prefix + '/'):
            return capability
    return None


def resolve_capability(key) -> Optional[Capability]:
    """Map a Capability, capability value or route path onto the access table."""
    if isinstance(key, Capability):
        return key
    if not isinstance(key, str):
        return None
    key = key.strip()
    if key.startswith('/'):
        return capability_for_route(key)
    # 'access admin area', 'access-admin-area' and 'access_admin_area' are the same key
    normalized = key.lower().replace(' ', '_').replace('-', '_')
    try:
        return Capability(normalized)
    except ValueError:
        return None


def can_access(role: Role | str, capability_or_route) -> bool:
    """
    Decide whether a role may use a capability or route.

    Keys missing from the table are allowed for every role, guest and
    unknown role strings included. Mapped keys are denied to role strings
    outside the fixed set.

    Args:
        role: Role enum or role string
        capability_or_route: Capability enum, capability value or route path

    Returns:
        True if access is granted, False otherwise
    """
    capability = resolve_capability(capability_or_route)
    if capability is None:
        # TODO: unmapped keys are public; review whether they should be denied
        return True

    parsed = Role.parse(role)
    if parsed is None:
        return False
    return parsed in CAPABILITY_ROLES[capability]


def get_permissions_for_role(role: Role | str) -> Set[Capability]:
    """
    Get all capabilities for a given role.

    Args:
        role: Role enum or role string

    Returns:
        Set of capabilities for the role (empty for unknown roles)
    """
    parsed = Role.parse(role)
    if parsed is None:
        return set()
    return {capability for capability, roles in CAPABILITY_ROLES.items() if parsed in roles}


def has_permission(role: Role | str, capability: Capability | str) -> bool:
    """Check if a role holds a named capability. Unknown capability names are refused."""
    resolved = resolve_capability(capability)
    if resolved is None:
        return False
    return resolved in get_permissions_for_role(role)


def get_ui_features_for_role(role: Role | str) -> dict[str, bool]:
    """
    Get UI feature visibility for a role.
    Used by dashboards to decide which sections to show.

    Args:
        role: Role enum or role string

    Returns:
        Dictionary mapping feature names to visibility boolean
    """
    perms = get_permissions_for_role(role)

    return {
        'student_area': Capability.ACCESS_STUDENT_AREA in perms,
        'advanced_area': Capability.ACCESS_ADVANCED_AREA in perms,
        'teacher_area': Capability.ACCESS_TEACHER_AREA in perms,
        'admin_area': Capability.ACCESS_ADMIN_AREA in perms,
        'manage_users': Capability.MANAGE_USERS in perms,
        'moderate_content': Capability.MODERATE_CONTENT in perms,
        'connect_students': Capability.CONNECT_TO_STUDENTS in perms,
        'direct_messages': Capability.SEND_DIRECT_MESSAGES in perms,
    }
