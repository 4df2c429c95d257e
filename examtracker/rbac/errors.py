"""
Exceptions raised by the RBAC engine
"""


class RBACError(Exception):
    """Base class for role and permission errors"""


class ConnectionPermissionError(RBACError):
    """A teacher/student connection was requested by or for an account whose role does not allow it."""

    def __init__(self, side: str, role, message: str = None):
        self.side = side
        self.role = role
        if message is None:
            if side == 'teacher':
                message = 'Only teachers can connect with students'
            else:
                message = 'Can only connect with students'
        super().__init__(message)


class InvalidRoleTransition(RBACError):
    """A requested role change is not on the sanctioned upgrade path."""

    def __init__(self, current_role, target_role):
        self.current_role = current_role
        self.target_role = target_role
        super().__init__(f"Invalid role upgrade path: {current_role} -> {target_role}")


class InvalidRoleOverride(RBACError):
    """An administrative role change names a role that cannot be assigned."""
