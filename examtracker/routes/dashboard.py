"""
Role-based dashboards

Area access (/student, /advanced, /teacher) is enforced by the route guard;
these views only assemble what each role gets to see.
"""
from flask import Blueprint, jsonify, session
import logging

from examtracker.models import UserModel, MessageModel
from examtracker.rbac.decorators import login_required, role_required, current_role
from examtracker.rbac.roles import Role
from examtracker.rbac.upgrade import UPGRADE_MIN_LOGINS, UPGRADE_MIN_EXAMS
from examtracker.rbac.utils import get_role_display_name, get_ui_features

logger = logging.getLogger(__name__)
bp = Blueprint('dashboard', __name__)


def _upgrade_progress(account) -> dict:
    """How far a student is from the automatic upgrade"""
    return {
        'eligible_role': Role.ADVANCED.value,
        'logins': {'current': account.login_count, 'required': UPGRADE_MIN_LOGINS},
        'exams': {'current': account.total_exams, 'required': UPGRADE_MIN_EXAMS},
    }


def _student_view(uid: str) -> dict:
    account = UserModel.get_account(uid)
    messages = MessageModel(uid).get_messages()
    view = {
        'exam_activity': {
            'total_exams': account.exam_activity.total_exams,
            'completed_exams': account.exam_activity.completed_exams,
            'average_score': account.exam_activity.average_score,
        },
        'teachers': UserModel.connected_teachers(uid),
        'unread_messages': sum(1 for message in messages if not message['read']),
    }
    if account.role == Role.STUDENT:
        view['upgrade_progress'] = _upgrade_progress(account)
    return view


def _teacher_view(uid: str) -> dict:
    account = UserModel.get_account(uid)
    return {
        'students': UserModel.connected_students(uid),
        'active_students': len(account.active_connections()),
    }


@bp.route('/dashboard')
@login_required
def dashboard():
    """Summary for whichever role the caller currently holds"""
    try:
        uid = session['user_id']
        role = current_role()
        account = UserModel.get_account(uid)
        if account is None:
            session.clear()
            return jsonify({'success': False, 'error': 'Account no longer exists'}), 401

        payload = {
            'success': True,
            'user': account.to_dict(),
            'role': role.value,
            'role_label': get_role_display_name(role),
            'features': get_ui_features(),
        }
        if role in (Role.STUDENT, Role.ADVANCED):
            payload['student'] = _student_view(uid)
        elif role == Role.TEACHER:
            payload['teacher'] = _teacher_view(uid)
        elif role == Role.ADMIN:
            payload['admin_url'] = '/admin/'
        return jsonify(payload)
    except Exception as e:
        logger.error(f"Error loading dashboard: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/student/dashboard')
@login_required
def student_dashboard():
    return jsonify({'success': True, 'area': 'student', **_student_view(session['user_id'])})


@bp.route('/advanced/dashboard')
@login_required
def advanced_dashboard():
    view = _student_view(session['user_id'])
    view.pop('upgrade_progress', None)
    return jsonify({'success': True, 'area': 'advanced', **view})


@bp.route('/teacher/dashboard')
@role_required(Role.TEACHER)
def teacher_dashboard():
    return jsonify({'success': True, 'area': 'teacher', **_teacher_view(session['user_id'])})


@bp.route('/unauthorized')
def unauthorized():
    return jsonify({
        'success': False,
        'error': 'You do not have permission to access this page',
        'role': current_role().value
    }), 403
