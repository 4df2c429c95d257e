"""
User account and teacher/student connection endpoints
"""
from flask import Blueprint, request, jsonify, session
from typing import Optional
import logging

from examtracker.models import UserModel, get_settings_store
from examtracker.rbac.account import ConnectionStatus
from examtracker.rbac.connections import connect_teacher_student, ensure_can_connect
from examtracker.rbac.decorators import login_required, capability_required, current_role
from examtracker.rbac.errors import ConnectionPermissionError, InvalidRoleTransition, InvalidRoleOverride
from examtracker.rbac.permissions import Capability, has_permission
from examtracker.rbac.upgrade import evaluate_upgrade, plan_role_change, plan_role_override, UpgradeResult

logger = logging.getLogger(__name__)
bp = Blueprint('users', __name__)


def _can_manage_users() -> bool:
    return has_permission(current_role(), Capability.MANAGE_USERS)


def _is_self_or_manager(uid: str) -> bool:
    return session.get('user_id') == uid or _can_manage_users()


def _forbidden(message='Access denied'):
    return jsonify({'success': False, 'error': message}), 403


def _not_found(message='User not found'):
    return jsonify({'success': False, 'error': message}), 404


def _reevaluate(uid: str) -> Optional[UpgradeResult]:
    """Run the activity upgrade rule against fresh counters and persist the result; None when the account is gone"""
    account = UserModel.get_account(uid)
    if account is None:
        return None
    result = evaluate_upgrade(account)
    if result.upgraded and not UserModel.apply_upgrade(uid, result):
        # Someone else changed the role in between; report what is stored now
        account = UserModel.get_account(uid)
        if account is None:
            return None
        return UpgradeResult(upgraded=False, previous_role=account.role, new_role=account.role)
    return result


# ==================== ACCOUNTS ====================

@bp.route('/', methods=['GET'])
@capability_required(Capability.MANAGE_USERS)
def list_users():
    try:
        role_filter = request.args.get('role', 'all')
        search = request.args.get('search', '').strip()
        page = max(int(request.args.get('page', 1)), 1)
        per_page = min(max(int(request.args.get('per_page', 50)), 1), 200)

        users, total = UserModel.list_users(role_filter, search, page, per_page)
        return jsonify({
            'success': True,
            'users': users,
            'total': total,
            'page': page,
            'per_page': per_page,
            'total_pages': (total + per_page - 1) // per_page
        })
    except ValueError:
        return jsonify({'success': False, 'error': 'Invalid paging parameters'}), 400
    except Exception as e:
        logger.error(f"Error listing users: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/', methods=['POST'])
def create_user():
    """
    First sign-in through the external identity provider: create the account as a student.

    No credential is checked here, so no session is started; the caller signs
    in through /auth/login or the provider.
    """
    try:
        if not get_settings_store().load().registration_enabled:
            return jsonify({'success': False, 'error': 'Registration is currently disabled'}), 403

        data = request.get_json(silent=True) or {}
        uid = (data.get('uid') or '').strip()
        email = (data.get('email') or '').strip()
        if not uid or not email:
            return jsonify({'success': False, 'error': 'uid and email are required'}), 400

        display_name = (data.get('display_name') or email.split('@')[0]).strip()
        try:
            UserModel.create_user(uid, email, display_name, photo_url=data.get('photo_url', ''),
                                  login_count=0)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 409

        logger.info(f"Created account {uid} from identity provider sign-in")
        return jsonify({'success': True, 'user': UserModel.get_user_by_uid(uid)}), 201
    except Exception as e:
        logger.error(f"Error creating user: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<uid>', methods=['GET'])
@login_required
def get_user(uid):
    caller = session['user_id']
    if caller != uid and not _can_manage_users():
        account = UserModel.get_account(caller)
        if account is None or not account.is_connected_to(uid):
            return _forbidden()

    user = UserModel.get_user_by_uid(uid)
    if user is None:
        return _not_found()
    return jsonify({'success': True, 'user': user})


@bp.route('/<uid>', methods=['PUT'])
@login_required
def update_user(uid):
    if not _is_self_or_manager(uid):
        return _forbidden()

    try:
        data = request.get_json(silent=True) or {}
        if UserModel.get_user_by_uid(uid) is None:
            return _not_found()

        role = None
        if 'role' in data:
            if not _can_manage_users():
                logger.info(f"User {session['user_id']} tried to change the role of {uid}")
                return _forbidden('Only administrators can change roles')
            try:
                role = plan_role_override(session['user_id'], uid, data['role'])
            except InvalidRoleOverride as e:
                return jsonify({'success': False, 'error': str(e)}), 400

        if not UserModel.update_profile(uid, data, role=role):
            return _not_found()
        if role is not None:
            logger.info(f"Admin {session['user_id']} set role of {uid} to {role}")
        return jsonify({'success': True, 'user': UserModel.get_user_by_uid(uid)})
    except Exception as e:
        logger.error(f"Error updating user {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<uid>', methods=['DELETE'])
@capability_required(Capability.MANAGE_USERS)
def delete_user(uid):
    if uid == session['user_id']:
        return jsonify({'success': False, 'error': 'Cannot delete your own account'}), 400
    try:
        if not UserModel.delete_user(uid):
            return _not_found()
        logger.info(f"Admin {session['user_id']} deleted user {uid}")
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error deleting user {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


# ==================== ACTIVITY AND UPGRADES ====================

@bp.route('/<uid>/login', methods=['POST'])
@capability_required(Capability.MANAGE_USERS)
def record_login(uid):
    """Count a sign-in verified by the external identity provider; password sign-ins count in /auth/login"""
    try:
        if not UserModel.record_login(uid):
            return _not_found()
        result = _reevaluate(uid)
        if result is None:
            return _not_found()
        return jsonify({'success': True, 'upgrade': result.to_dict()})
    except Exception as e:
        logger.error(f"Error recording login for {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<uid>/exams', methods=['POST'])
@login_required
def record_exam(uid):
    """Exam activity reported by the exam tracker; may complete an upgrade"""
    if not _is_self_or_manager(uid):
        return _forbidden()
    try:
        data = request.get_json(silent=True) or {}
        score = data.get('score')
        if score is not None:
            try:
                score = float(score)
            except (TypeError, ValueError):
                return jsonify({'success': False, 'error': 'score must be a number'}), 400

        if not UserModel.record_exam_activity(uid, completed=bool(data.get('completed')), score=score):
            return _not_found()
        result = _reevaluate(uid)
        if result is None:
            return _not_found()
        return jsonify({'success': True, 'upgrade': result.to_dict()})
    except Exception as e:
        logger.error(f"Error recording exam activity for {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<uid>/upgrade', methods=['POST'])
@login_required
def upgrade_user(uid):
    """
    Move an account along the upgrade path.

    With `target_role` (administrators only) the account moves to that role if the
    path allows it; with `criteria` the activity rule decides.
    """
    if not _is_self_or_manager(uid):
        return _forbidden()

    data = request.get_json(silent=True) or {}
    target = data.get('target_role')
    criteria = data.get('criteria')
    if target is not None and not _can_manage_users():
        return _forbidden('Only administrators can request a specific role')

    try:
        account = UserModel.get_account(uid)
        if account is None:
            return _not_found()

        try:
            change = plan_role_change(account, target=target, criteria=criteria)
        except InvalidRoleTransition as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        if not change.changed:
            return jsonify({'success': True, 'upgraded': False, 'role': account.role.value})

        result = UpgradeResult(upgraded=True, previous_role=change.current_role, new_role=change.target_role)
        if not UserModel.apply_upgrade(uid, result):
            return jsonify({'success': False, 'error': 'Role changed concurrently, try again'}), 409

        return jsonify({'success': True, 'upgraded': True, 'role': result.new_role.value,
                        'upgrade': result.to_dict(),
                        'account': account.with_role(result.new_role).to_dict()})
    except Exception as e:
        logger.error(f"Error upgrading user {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


# ==================== CONNECTIONS ====================

@bp.route('/connect', methods=['POST'])
@login_required
def connect():
    """Connect a teacher with a student; the caller is the teacher unless an admin names one"""
    settings = get_settings_store().load()
    if not settings.features.teacher_student_connect:
        return _forbidden('Teacher/student connections are disabled')

    data = request.get_json(silent=True) or {}
    teacher_uid = data.get('teacher_uid') or session['user_id']
    student_uid = data.get('student_uid')
    if not student_uid:
        return jsonify({'success': False, 'error': 'student_uid is required'}), 400
    if teacher_uid != session['user_id'] and not _can_manage_users():
        return _forbidden()

    try:
        teacher = UserModel.get_account(teacher_uid)
        student = UserModel.get_account(student_uid)
        if teacher is None or student is None:
            return _not_found()

        try:
            ensure_can_connect(teacher, student)
        except ConnectionPermissionError as e:
            logger.info(f"Connection {teacher_uid} -> {student_uid} refused on the {e.side} side")
            return jsonify({'success': False, 'error': str(e), 'side': e.side}), 403

        if (not teacher.is_connected_to(student_uid)
                and UserModel.count_active_connections(teacher_uid) >= settings.max_users_per_teacher):
            return jsonify({'success': False, 'error': 'Connection limit reached for this teacher'}), 400

        result = connect_teacher_student(teacher, student, link=UserModel.link_accounts)
        if result.created:
            logger.info(f"Connected teacher {teacher_uid} with student {student_uid}")

        return jsonify({
            'success': True,
            'outcome': result.outcome.value,
            'teacher_uid': result.teacher_id,
            'student_uid': result.student_id
        }), 201 if result.created else 200
    except ConnectionPermissionError as e:
        return jsonify({'success': False, 'error': str(e), 'side': e.side}), 403
    except Exception as e:
        logger.error(f"Error connecting {teacher_uid} and {student_uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/connect', methods=['PATCH'])
@login_required
def update_connection():
    """Change the status of an existing link; either party or an admin may do it"""
    data = request.get_json(silent=True) or {}
    teacher_uid = data.get('teacher_uid')
    student_uid = data.get('student_uid')
    if not teacher_uid or not student_uid:
        return jsonify({'success': False, 'error': 'teacher_uid and student_uid are required'}), 400

    if session['user_id'] not in (teacher_uid, student_uid) and not _can_manage_users():
        return _forbidden()

    try:
        status = ConnectionStatus(data.get('status'))
    except ValueError:
        return jsonify({'success': False, 'error': 'Invalid connection status'}), 400

    try:
        if not UserModel.set_connection_status(teacher_uid, student_uid, status):
            return _not_found('Connection not found')
        logger.info(f"Connection {teacher_uid}/{student_uid} set to {status} by {session['user_id']}")
        return jsonify({'success': True, 'status': status.value})
    except Exception as e:
        logger.error(f"Error updating connection: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/connected/<teacher_uid>', methods=['GET'])
@login_required
def connected_students(teacher_uid):
    if not _is_self_or_manager(teacher_uid):
        return _forbidden()
    try:
        students = UserModel.connected_students(teacher_uid)
        return jsonify({'success': True, 'students': students, 'count': len(students)})
    except Exception as e:
        logger.error(f"Error listing students of {teacher_uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<uid>/teachers', methods=['GET'])
@login_required
def connected_teachers(uid):
    if not _is_self_or_manager(uid):
        return _forbidden()
    try:
        teachers = UserModel.connected_teachers(uid)
        return jsonify({'success': True, 'teachers': teachers, 'count': len(teachers)})
    except Exception as e:
        logger.error(f"Error listing teachers of {uid}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500
