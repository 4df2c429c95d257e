"""
Admin routes for system management
Provides the admin dashboard statistics, user role management and site settings.
"""
from flask import Blueprint, request, jsonify, session
from datetime import datetime, timedelta
import logging

from examtracker.models import UserModel, SettingsValidationError, get_settings_store
from examtracker.rbac.decorators import login_required, admin_only
from examtracker.rbac.errors import InvalidRoleOverride
from examtracker.rbac.upgrade import plan_role_override

logger = logging.getLogger(__name__)
bp = Blueprint('admin', __name__, url_prefix='/admin')

# Online presence is not tracked; the dashboard shows a fixed share of all users
ONLINE_USER_RATIO = 0.15

PERIODS = {
    '1d': timedelta(days=1),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
}


# ==================== DASHBOARD ====================

@bp.route('/')
@login_required
@admin_only
def dashboard():
    """Admin dashboard statistics"""
    try:
        period = request.args.get('range', '7d')
        now = datetime.utcnow()
        since = now - PERIODS.get(period, PERIODS['7d'])
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)

        by_role = UserModel.count_by_role()
        total_users = sum(by_role.values())

        stats = {
            'users': {
                'total': total_users,
                **by_role,
                'online': int(total_users * ONLINE_USER_RATIO),
                'new_today': UserModel.count_created_since(today),
                'new_in_period': UserModel.count_created_since(since),
            },
            'range': period if period in PERIODS else '7d',
        }
        return jsonify({'success': True, 'stats': stats})
    except Exception as e:
        logger.error(f"Error loading admin dashboard: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


# ==================== USER MANAGEMENT ====================

@bp.route('/users', methods=['GET'])
@login_required
@admin_only
def list_users():
    """List all users with filtering"""
    try:
        role_filter = request.args.get('role', 'all')  # all, student, advanced, teacher, admin
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


@bp.route('/users/<uid>/role', methods=['PUT'])
@login_required
@admin_only
def update_user_role(uid):
    """Administrative role change"""
    try:
        data = request.get_json(silent=True) or {}
        try:
            new_role = plan_role_override(session['user_id'], uid, data.get('role'))
        except InvalidRoleOverride as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        if not UserModel.set_role(uid, new_role):
            return jsonify({'success': False, 'error': 'User not found'}), 404

        logger.info(f"Admin {session['user_id']} changed role of {uid} to {new_role}")
        return jsonify({'success': True, 'message': f'User role updated to {new_role.value}',
                        'user': UserModel.get_user_by_uid(uid)})
    except Exception as e:
        logger.error(f"Error updating user role: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


# ==================== SITE SETTINGS ====================

@bp.route('/settings', methods=['GET'])
@login_required
@admin_only
def get_settings():
    """Current settings, optionally restricted to one category"""
    try:
        category = request.args.get('category')
        return jsonify({'success': True, 'settings': get_settings_store().category(category)})
    except Exception as e:
        logger.error(f"Error fetching settings: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to fetch settings'}), 500


@bp.route('/settings', methods=['PUT'])
@login_required
@admin_only
def update_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'success': False, 'error': 'Settings object is required'}), 400

    try:
        settings = get_settings_store().update(data, admin_uid=session['user_id'])
        return jsonify({'success': True, 'message': 'Settings updated successfully',
                        'settings': settings.model_dump(mode='json')})
    except SettingsValidationError as e:
        return jsonify({'success': False, 'error': 'Validation failed', 'details': e.details}), 400
    except Exception as e:
        logger.error(f"Error updating settings: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to update settings'}), 500


@bp.route('/settings', methods=['POST'])
@login_required
@admin_only
def settings_action():
    """Reset to defaults or store a backup"""
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    store = get_settings_store()

    try:
        if action == 'reset':
            settings = store.reset(admin_uid=session['user_id'])
            return jsonify({'success': True, 'message': 'Settings reset to defaults',
                            'settings': settings.model_dump(mode='json')})
        if action == 'backup':
            backup = store.backup(admin_uid=session['user_id'])
            return jsonify({'success': True, 'message': 'Settings backup created', 'backup': backup})
        return jsonify({'success': False, 'error': 'Invalid action'}), 400
    except Exception as e:
        logger.error(f"Error running settings action {action}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to process settings action'}), 500


@bp.route('/settings', methods=['DELETE'])
@login_required
@admin_only
def reset_settings():
    """Reset a single key or a whole category to defaults"""
    key = request.args.get('key')
    category = request.args.get('category')
    store = get_settings_store()

    try:
        if key:
            settings = store.reset_key(key, admin_uid=session['user_id'])
            message = f"Setting '{key}' reset to default"
        elif category:
            settings = store.reset_category(category, admin_uid=session['user_id'])
            message = f"Category '{category}' reset to defaults"
        else:
            return jsonify({'success': False, 'error': 'Must specify key or category to reset'}), 400
        return jsonify({'success': True, 'message': message, 'settings': settings.model_dump(mode='json')})
    except SettingsValidationError as e:
        return jsonify({'success': False, 'error': str(e), 'details': e.details}), 400
    except Exception as e:
        logger.error(f"Error resetting settings: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to reset settings'}), 500
