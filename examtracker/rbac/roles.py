"""
Role definitions for RBAC system
"""
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """User roles in the system"""
    GUEST = "guest"
    STUDENT = "student"
    ADVANCED = "advanced"
    TEACHER = "teacher"
    ADMIN = "admin"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, role_str) -> Optional['Role']:
        """
        Convert a string to a Role enum.

        Returns None for anything that is not one of the fixed roles, so callers
        can deny unknown roles instead of silently treating them as students.
        """
        if isinstance(role_str, cls):
            return role_str
        if not isinstance(role_str, str):
            return None
        role_str = role_str.lower().strip()
        for role in cls:
            if role.value == role_str:
                return role
        return None

    @classmethod
    def is_valid(cls, role_str) -> bool:
        """Check if a string is a valid role"""
        return cls.parse(role_str) is not None

    @classmethod
    def get_all(cls) -> list[str]:
        """Get all role values as strings"""
        return [role.value for role in cls]


# Ordering used for "at least" checks; unknown roles rank lowest
ROLE_LEVELS: dict[Role, int] = {
    Role.GUEST: 0,
    Role.STUDENT: 1,
    Role.ADVANCED: 2,
    Role.TEACHER: 3,
    Role.ADMIN: 4,
}

# Forward transitions an administrator may sanction through the upgrade endpoint
SANCTIONED_UPGRADES: dict[Role, tuple[Role, ...]] = {
    Role.STUDENT: (Role.ADVANCED,),
    Role.ADVANCED: (Role.ADMIN,),
    Role.ADMIN: (),
}

# Role assigned on first successful sign-in
DEFAULT_ROLE = Role.STUDENT


def is_privileged(role: Role | str) -> bool:
    """Derived admin flag; the only place it is computed."""
    return Role.parse(role) == Role.ADMIN


def role_level(role: Role | str) -> int:
    parsed = Role.parse(role)
    return ROLE_LEVELS[parsed] if parsed is not None else 0


def is_at_least(role: Role | str, minimum: Role | str) -> bool:
    """Check whether a role ranks at or above another one."""
    return role_level(role) >= role_level(minimum)
