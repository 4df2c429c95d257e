"""
Role changes: automatic upgrades driven by account activity and administrative overrides
"""
from dataclasses import dataclass
from typing import Optional

from examtracker.rbac.account import UserAccount
from examtracker.rbac.errors import InvalidRoleTransition, InvalidRoleOverride
from examtracker.rbac.roles import Role, SANCTIONED_UPGRADES

UPGRADE_MIN_LOGINS = 10
UPGRADE_MIN_EXAMS = 5

# Criteria name accepted by the upgrade endpoint for activity-based upgrades
ACTIVITY_CRITERIA = 'login_count_and_exam_progress'


@dataclass(frozen=True)
class UpgradeResult:
    upgraded: bool
    previous_role: Role
    new_role: Role

    def to_dict(self) -> dict:
        return {
            'upgraded': self.upgraded,
            'previous_role': self.previous_role.value,
            'new_role': self.new_role.value,
        }


@dataclass(frozen=True)
class RoleChange:
    """Outcome of planning an explicit or criteria-based role change"""
    current_role: Role
    target_role: Optional[Role]

    @property
    def changed(self) -> bool:
        return self.target_role is not None and self.target_role != self.current_role


def evaluate_upgrade(account: UserAccount) -> UpgradeResult:
    """
    Decide whether an account has earned an automatic upgrade.

    Only students move, and only to advanced, once they have logged in
    at least UPGRADE_MIN_LOGINS times and have UPGRADE_MIN_EXAMS exams on
    record. The function never mutates the account; the caller persists
    new_role when upgraded is True.
    """
    previous = account.role
    if (previous == Role.STUDENT
            and account.login_count >= UPGRADE_MIN_LOGINS
            and account.exam_activity.total_exams >= UPGRADE_MIN_EXAMS):
        return UpgradeResult(upgraded=True, previous_role=previous, new_role=Role.ADVANCED)
    return UpgradeResult(upgraded=False, previous_role=previous, new_role=previous)


def plan_role_change(account: UserAccount, target: Optional[Role | str] = None,
                     criteria: Optional[str] = None) -> RoleChange:
    """
    Work out the role an upgrade request should move the account to.

    Args:
        account: Current account snapshot
        target: Explicitly requested role, if any
        criteria: Name of the activity rule to apply when no target is given

    Returns:
        RoleChange; `changed` is False when nothing needs to happen

    Raises:
        InvalidRoleTransition: target is not a known role or not on the sanctioned path
    """
    current = account.role
    target_role = None

    if target is not None:
        target_role = Role.parse(target)
        if target_role is None:
            raise InvalidRoleTransition(current, target)
    elif criteria == ACTIVITY_CRITERIA:
        result = evaluate_upgrade(account)
        if result.upgraded:
            target_role = result.new_role

    change = RoleChange(current_role=current, target_role=target_role)
    if not change.changed:
        return change

    if target_role not in SANCTIONED_UPGRADES.get(current, ()):
        raise InvalidRoleTransition(current, target_role)
    return change


def plan_role_override(actor_uid: str, uid: str, role: Optional[Role | str]) -> Role:
    """
    Validate an administrative role change.

    Any assignable role may be granted, but guest is not an account role and
    an administrator cannot take the admin role away from their own account.

    Raises:
        InvalidRoleOverride: with a message suitable for the caller
    """
    new_role = Role.parse(role)
    if new_role is None or new_role == Role.GUEST:
        raise InvalidRoleOverride('Invalid role')
    if actor_uid == uid and new_role != Role.ADMIN:
        raise InvalidRoleOverride('Cannot remove your own admin role')
    return new_role
