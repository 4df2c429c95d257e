"""
Request guard applying the access table to route paths
"""
import logging
from flask import request, session

from examtracker.rbac.decorators import current_role, deny
from examtracker.rbac.permissions import can_access, capability_for_route
from examtracker.rbac.roles import Role

logger = logging.getLogger(__name__)


def check_route_access():
    """
    before_request hook: deny protected paths to roles that lack the area capability.

    Paths outside the protected prefixes are passed through untouched.
    """
    if request.method == 'OPTIONS':
        return None

    capability = capability_for_route(request.path)
    if capability is None:
        return None

    role = current_role()
    if can_access(role, request.path):
        return None

    if role == Role.GUEST:
        logger.info(f"Anonymous request to protected path {request.path}")
        return deny(401, 'Login required')

    logger.info(f"User {session.get('user_id')} with role {role} denied {capability} on {request.path}")
    return deny(403, 'Access denied')


def register_route_guard(app):
    app.before_request(check_route_access)
