"""
RBAC (Role-Based Access Control) module for Exam Tracker

This module provides role-based access control functionality with support for:
- Guest: unauthenticated visitor, public pages only
- Student: study area; upgraded automatically to Advanced after enough activity
- Advanced: student and advanced areas
- Teacher: connects with students, messages them, moderates content
- Admin: everything, including user management
"""

from examtracker.rbac.roles import Role, is_privileged, is_at_least
from examtracker.rbac.permissions import (
    Capability,
    can_access,
    get_permissions_for_role,
    has_permission
)
from examtracker.rbac.account import UserAccount, ExamActivity, ConnectionStatus
from examtracker.rbac.upgrade import evaluate_upgrade, plan_role_change, UpgradeResult
from examtracker.rbac.connections import (
    connect_teacher_student,
    ensure_can_connect,
    ConnectOutcome,
    ConnectResult
)
from examtracker.rbac.errors import RBACError, ConnectionPermissionError, InvalidRoleTransition
from examtracker.rbac.decorators import (
    login_required,
    capability_required,
    role_required,
    admin_only
)

__all__ = [
    'Role',
    'is_privileged',
    'is_at_least',
    'Capability',
    'can_access',
    'get_permissions_for_role',
    'has_permission',
    'UserAccount',
    'ExamActivity',
    'ConnectionStatus',
    'evaluate_upgrade',
    'plan_role_change',
    'UpgradeResult',
    'connect_teacher_student',
    'ensure_can_connect',
    'ConnectOutcome',
    'ConnectResult',
    'RBACError',
    'ConnectionPermissionError',
    'InvalidRoleTransition',
    'login_required',
    'capability_required',
    'role_required',
    'admin_only',
]
