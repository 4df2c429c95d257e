"""
RBAC decorators for route protection
"""
from functools import wraps
from flask import session, redirect, url_for, request, jsonify
import logging

from examtracker.rbac.roles import Role
from examtracker.rbac.permissions import Capability, can_access

logger = logging.getLogger(__name__)


def wants_json() -> bool:
    """API callers get JSON errors, browsers get redirects."""
    return (
        request.is_json
        or request.path.startswith('/api/')
        or request.accept_mimetypes.best == 'application/json'
    )


def deny(status: int, message: str):
    """Authorization failure response: JSON error or redirect to the unauthorized page."""
    if wants_json():
        return jsonify({'success': False, 'error': message}), status
    return redirect(url_for('dashboard.unauthorized'))


def current_role() -> Role:
    """
    Role of the caller, read fresh from storage.

    Upgrades happen behind the session's back, so the cached session value
    is refreshed instead of trusted.
    """
    uid = session.get('user_id')
    if not uid:
        return Role.GUEST

    from examtracker.models import UserModel
    role = Role.parse(UserModel(uid).get_role()) or Role.GUEST
    if session.get('role') != role.value:
        session['role'] = role.value
    return role


def login_required(f):
    """Decorator to require login for routes."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            logger.info("Unauthorized access attempt - login required")
            return deny(401, 'Login required')
        return f(*args, **kwargs)
    return decorated_function


def capability_required(capability: Capability | str):
    """
    Decorator to require a capability for routes.

    Args:
        capability: Capability enum or capability value

    Example:
        @capability_required(Capability.MANAGE_USERS)
        def list_users():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if 'user_id' not in session:
                logger.info("Unauthorized access attempt - login required")
                return deny(401, 'Login required')

            role = current_role()
            if role == Role.GUEST or not can_access(role, capability):
                logger.info(f"User {session['user_id']} with role {role} attempted to use {capability}")
                return deny(403, 'Insufficient permissions')

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def role_required(required_role: Role | str):
    """
    Decorator to require a specific role for routes. Admins pass every role check.

    Args:
        required_role: Role enum or role string
    """
    required = Role.parse(required_role)
    if required is None:
        raise ValueError(f"Unknown role: {required_role}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if 'user_id' not in session:
                logger.info("Unauthorized access attempt - login required")
                return deny(401, 'Login required')

            role = current_role()
            if role != Role.ADMIN and role != required:
                logger.info(f"User {session['user_id']} with role {role} attempted to access {required.value}-only route")
                return deny(403, f'{required.value.capitalize()} access required')

            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_only = capability_required(Capability.MANAGE_USERS)
