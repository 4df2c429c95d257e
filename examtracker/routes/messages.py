from flask import Blueprint, request, jsonify, session
import logging

from examtracker.models import UserModel, MessageModel, get_settings_store
from examtracker.models.message import MESSAGE_TYPES
from examtracker.rbac.decorators import login_required, current_role
from examtracker.rbac.permissions import Capability, can_access
from examtracker.rbac.roles import Role

logger = logging.getLogger(__name__)
bp = Blueprint('messages', __name__)


def _may_send(sender_uid: str, sender_role: Role, recipient_uid: str, message_type: str) -> bool:
    """Whether the sender may put this kind of message in the recipient's inbox"""
    if sender_role == Role.ADMIN:
        return True
    if message_type == 'teacher_to_student':
        return (can_access(sender_role, Capability.SEND_DIRECT_MESSAGES)
                and UserModel.is_actively_connected(sender_uid, recipient_uid))
    if message_type == 'student_to_teacher':
        return UserModel.is_actively_connected(recipient_uid, sender_uid)
    return False


@bp.route('/', methods=['POST'])
@login_required
def send_message():
    if not get_settings_store().load().features.messaging:
        return jsonify({'success': False, 'error': 'Messaging is disabled'}), 403

    data = request.get_json(silent=True) or {}
    recipient_uid = data.get('recipient_uid')
    body = (data.get('message') or '').strip()
    message_type = data.get('type', 'teacher_to_student')

    if not recipient_uid or not body:
        return jsonify({'success': False, 'error': 'recipient_uid and message are required'}), 400
    if message_type not in MESSAGE_TYPES:
        return jsonify({'success': False, 'error': 'Invalid message type'}), 400

    try:
        sender_uid = session['user_id']
        sender = UserModel.get_user_by_uid(sender_uid)
        if UserModel.get_user_by_uid(recipient_uid) is None:
            return jsonify({'success': False, 'error': 'Recipient not found'}), 404

        if not _may_send(sender_uid, current_role(), recipient_uid, message_type):
            logger.info(f"User {sender_uid} may not send {message_type} to {recipient_uid}")
            return jsonify({'success': False, 'error': 'You are not allowed to message this user'}), 403

        message_id = MessageModel(recipient_uid).receive(sender_uid, sender['display_name'], body, message_type)
        return jsonify({'success': True, 'id': message_id}), 201
    except Exception as e:
        logger.error(f"Error sending message: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/', methods=['GET'])
@login_required
def get_messages():
    try:
        messages = MessageModel(session['user_id']).get_messages()
        unread = sum(1 for message in messages if not message['read'])
        return jsonify({'success': True, 'messages': messages, 'unread': unread})
    except Exception as e:
        logger.error(f"Error retrieving messages: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500


@bp.route('/<int:message_id>/read', methods=['POST'])
@login_required
def mark_read(message_id):
    try:
        if not MessageModel(session['user_id']).mark_read(message_id):
            return jsonify({'success': False, 'error': 'Message not found'}), 404
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"Error marking message {message_id} read: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500
