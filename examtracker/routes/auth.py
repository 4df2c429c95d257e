from flask import Blueprint, request, session, jsonify, current_app
from werkzeug.security import generate_password_hash
import logging
import secrets
import uuid

from examtracker.models import UserModel, get_settings_store
from examtracker.rbac.roles import Role
from examtracker.rbac.upgrade import evaluate_upgrade

logger = logging.getLogger(__name__)
bp = Blueprint('auth', __name__)

MIN_PASSWORD_LENGTH = 6


def _payload():
    """Accept both JSON bodies and form posts"""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data


def _redirect_for(role: str) -> str:
    return '/admin' if role == Role.ADMIN.value else '/dashboard'


def start_session(user: dict, role: str):
    session.clear()
    session.permanent = True
    session['user_id'] = user['uid']
    session['role'] = role
    session['user_name'] = user['display_name']


@bp.route('/register', methods=['POST'])
def register():
    try:
        data = _payload()
        display_name = (data.get('display_name') or '').strip()
        email = (data.get('email') or '').strip()
        password = data.get('password') or ''
        user_type = (data.get('user_type') or Role.STUDENT.value).strip().lower()

        missing_fields = [name for name, value in (
            ('display_name', display_name), ('email', email), ('password', password)
        ) if not value]
        if missing_fields:
            return jsonify({'success': False, 'error': f"Missing required fields: {', '.join(missing_fields)}"}), 400

        if len(password) < MIN_PASSWORD_LENGTH:
            return jsonify({'success': False, 'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400

        if user_type not in (Role.STUDENT.value, Role.TEACHER.value):
            return jsonify({'success': False, 'error': 'User type must be student or teacher'}), 400

        if not get_settings_store().load().registration_enabled:
            logger.info(f"Registration attempt while registration is disabled: {email}")
            return jsonify({'success': False, 'error': 'Registration is currently disabled'}), 403

        if user_type == Role.TEACHER.value:
            expected = current_app.config.get('TEACHER_REGISTRATION_CODE')
            supplied = data.get('teacher_code') or ''
            if not expected or not secrets.compare_digest(supplied, expected):
                logger.warning(f"Teacher registration rejected for {email}: bad registration code")
                return jsonify({'success': False, 'error': 'Invalid teacher registration code'}), 403

        if UserModel.get_user_by_email(email):
            return jsonify({'success': False, 'error': 'Email already registered'}), 409

        uid = uuid.uuid4().hex
        try:
            UserModel.create_user(
                uid=uid,
                email=email,
                display_name=display_name,
                role=user_type,
                password_hash=generate_password_hash(password),
                login_count=0,
            )
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 409

        logger.info(f"Registered {user_type} account {uid}")
        return jsonify({'success': True, 'uid': uid, 'role': user_type}), 201

    except Exception as e:
        logger.error(f"Registration error: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Registration failed'}), 500


@bp.route('/login', methods=['POST'])
def login():
    try:
        data = _payload()
        email = (data.get('email') or '').strip()
        password = data.get('password') or ''
        if not email or not password:
            return jsonify({'success': False, 'error': 'Email and password are required'}), 400

        user = UserModel.authenticate(email, password)
        if not user:
            logger.info(f"Failed login attempt for {email}")
            return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

        uid = user['uid']
        UserModel.record_login(uid)

        upgrade = evaluate_upgrade(UserModel.get_account(uid))
        if upgrade.upgraded:
            UserModel.apply_upgrade(uid, upgrade)

        role = UserModel(uid).get_role()
        start_session(user, role)
        logger.info(f"User {uid} logged in with role {role}")

        return jsonify({
            'success': True,
            'uid': uid,
            'role': role,
            'upgraded': upgrade.upgraded and role == upgrade.new_role.value,
            'redirect_url': _redirect_for(role)
        })

    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Login failed'}), 500


@bp.route('/logout', methods=['POST'])
def logout():
    uid = session.get('user_id')
    session.clear()
    if uid:
        logger.info(f"User {uid} logged out")
    return jsonify({'success': True})


@bp.route('/check_session')
def check_session():
    """Report whether the session belongs to a live account"""
    uid = session.get('user_id')
    if not uid:
        return jsonify({'authenticated': False, 'role': Role.GUEST.value})

    user = UserModel.get_user_by_uid(uid)
    if user is None:
        session.clear()
        return jsonify({'authenticated': False, 'role': Role.GUEST.value})

    session['role'] = user['role']
    return jsonify({
        'authenticated': True,
        'uid': uid,
        'role': user['role'],
        'is_privileged': user['is_privileged'],
        'display_name': user['display_name']
    })
