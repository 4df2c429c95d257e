from typing import Dict, List
import logging

from sqlalchemy import update

from examtracker.utils.db import get_db
from examtracker.models.database_models import Message as DBMessage

logger = logging.getLogger(__name__)

MESSAGE_TYPES = ('teacher_to_student', 'student_to_teacher', 'system')


class MessageModel:
    """Model for a user's inbox using ORM"""

    def __init__(self, uid: str):
        self.uid = uid

    @staticmethod
    def _to_dict(msg) -> Dict:
        return {
            'id': msg.id,
            'from_id': msg.sender_uid,
            'from_name': msg.sender_name,
            'message': msg.body,
            'type': msg.type,
            'read': msg.read,
            'created_at': msg.created_at.isoformat() if msg.created_at else None
        }

    def receive(self, sender_uid: str, sender_name: str, body: str, message_type: str) -> int:
        """Append a message to this user's inbox"""
        if message_type not in MESSAGE_TYPES:
            raise ValueError(f"Unknown message type: {message_type}")
        try:
            db = get_db()
            message = DBMessage(
                recipient_uid=self.uid,
                sender_uid=sender_uid,
                sender_name=sender_name,
                body=body,
                type=message_type
            )
            db.add(message)
            db.commit()
            return message.id
        except Exception as e:
            logger.error(f"Error saving message: {str(e)}", exc_info=True)
            db.rollback()
            raise

    def get_messages(self) -> List[Dict]:
        """Get all messages for this user, newest first"""
        try:
            db = get_db()
            messages = db.query(DBMessage).filter(
                DBMessage.recipient_uid == self.uid
            ).order_by(DBMessage.created_at.desc(), DBMessage.id.desc()).all()
            return [self._to_dict(msg) for msg in messages]
        except Exception as e:
            logger.error(f"Error retrieving messages: {str(e)}", exc_info=True)
            raise

    def mark_read(self, message_id: int) -> bool:
        """Mark one of this user's messages as read"""
        db = get_db()
        try:
            result = db.execute(
                update(DBMessage)
                .where(DBMessage.id == message_id, DBMessage.recipient_uid == self.uid)
                .values(read=True)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1
        except Exception as e:
            logger.error(f"Error marking message {message_id} read: {str(e)}", exc_info=True)
            db.rollback()
            raise
