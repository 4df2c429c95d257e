from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime
import logging

from sqlalchemy import update, or_, func
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash

from examtracker.utils.db import get_db
from examtracker.models.database_models import User as DBUser, Connection as DBConnection
from examtracker.rbac.account import UserAccount, ExamActivity, ConnectionStatus
from examtracker.rbac.roles import Role, DEFAULT_ROLE, is_privileged
from examtracker.rbac.upgrade import UpgradeResult

logger = logging.getLogger(__name__)

# Profile fields a user (or admin) may edit directly
PROFILE_FIELDS = ('display_name', 'photo_url', 'current_streak', 'longest_streak')


class UserModel:
    """User model for handling account-related database operations.

    Every mutation is a single UPDATE/INSERT/DELETE so that concurrent
    requests touching the same account never lose each other's writes.
    """

    def __init__(self, uid: Optional[str] = None):
        self.uid = uid

    @staticmethod
    def _model_to_dict(model_instance):
        """Convert SQLAlchemy model instance to dictionary"""
        if model_instance is None:
            return None
        result = {}
        for key in model_instance.__table__.columns.keys():
            if key == 'password_hash':
                continue
            value = getattr(model_instance, key)
            # Convert datetime objects to ISO format strings
            if isinstance(value, datetime):
                value = value.isoformat()
            result[key] = value
        return result

    @staticmethod
    def _update(uid: str, *conditions, **values) -> bool:
        """Run one conditional UPDATE on a user row; True when a row matched."""
        db = get_db()
        try:
            values.setdefault('updated_at', datetime.utcnow())
            result = db.execute(
                update(DBUser)
                .where(DBUser.uid == uid, *conditions)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1
        except Exception as e:
            logger.error(f"Error updating user {uid}: {str(e)}", exc_info=True)
            db.rollback()
            raise

    # ---------------------------------------------------------------- accounts

    @staticmethod
    def create_user(uid: str, email: str, display_name: str, photo_url: str = '',
                    role: Role | str = DEFAULT_ROLE, password_hash: Optional[str] = None,
                    login_count: int = 1) -> str:
        """Create a new user account"""
        parsed = Role.parse(role)
        if parsed is None:
            raise ValueError(f"Invalid role: {role}")

        db = get_db()
        try:
            now = datetime.utcnow()
            user = DBUser(
                uid=uid,
                email=email.strip().lower(),
                display_name=display_name.strip(),
                photo_url=photo_url or '',
                password_hash=password_hash,
                role=parsed.value,
                is_privileged=is_privileged(parsed),
                login_count=login_count,
                last_login=now if login_count else None,
            )
            db.add(user)
            db.commit()
            logger.info(f"Created user {uid} with role {parsed.value}")
            return user.uid
        except IntegrityError as e:
            logger.warning(f"User creation failed - integrity error: {str(e)}")
            db.rollback()
            raise ValueError("User already exists")
        except Exception as e:
            logger.error(f"User creation failed: {str(e)}", exc_info=True)
            db.rollback()
            raise

    @staticmethod
    def get_user_by_uid(uid: str) -> Optional[Dict[str, Any]]:
        """Retrieve user details by uid"""
        try:
            db = get_db()
            user = db.query(DBUser).filter(DBUser.uid == uid).first()
            return UserModel._model_to_dict(user)
        except Exception as e:
            logger.error(f"Error retrieving user by uid: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
        """Retrieve user details by email"""
        try:
            db = get_db()
            user = db.query(DBUser).filter(DBUser.email == email.strip().lower()).first()
            return UserModel._model_to_dict(user)
        except Exception as e:
            logger.error(f"Error retrieving user by email: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def authenticate(email: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the user when the password matches, None otherwise"""
        db = get_db()
        user = db.query(DBUser).filter(DBUser.email == email.strip().lower()).first()
        if user is None or not user.password_hash:
            return None
        if not check_password_hash(user.password_hash, password):
            return None
        return UserModel._model_to_dict(user)

    @staticmethod
    def get_account(uid: str) -> Optional[UserAccount]:
        """Build the engine snapshot for an account, connections included"""
        try:
            db = get_db()
            user = db.query(DBUser).filter(DBUser.uid == uid).first()
            if user is None:
                return None

            links = db.query(DBConnection).filter(
                or_(DBConnection.teacher_uid == uid, DBConnection.student_uid == uid)
            ).all()
            connections = {}
            for link in links:
                other = link.student_uid if link.teacher_uid == uid else link.teacher_uid
                connections[other] = ConnectionStatus(link.status)

            role = Role.parse(user.role)
            if role is None:
                raise ValueError(f"User {uid} has invalid role {user.role!r}")

            return UserAccount(
                id=user.uid,
                role=role,
                login_count=user.login_count,
                exam_activity=ExamActivity(
                    total_exams=user.total_exams,
                    completed_exams=user.completed_exams,
                    average_score=user.average_score,
                ),
                connections=connections,
                email=user.email,
                display_name=user.display_name,
            )
        except Exception as e:
            logger.error(f"Error loading account {uid}: {str(e)}", exc_info=True)
            raise

    def get_role(self) -> str:
        """Get the user's role; guest when the account does not exist"""
        db = get_db()
        role = db.query(DBUser.role).filter(DBUser.uid == self.uid).scalar()
        return role if role else Role.GUEST.value

    def is_admin(self) -> bool:
        return self.get_role() == Role.ADMIN.value

    @staticmethod
    def list_users(role: Optional[str] = None, search: str = '', page: int = 1,
                   per_page: int = 50) -> Tuple[List[Dict[str, Any]], int]:
        """List users with optional role filter and search, newest first"""
        db = get_db()
        query = db.query(DBUser)

        if role and role != 'all':
            query = query.filter(DBUser.role == role)

        if search:
            query = query.filter(
                or_(
                    DBUser.display_name.ilike(f'%{search}%'),
                    DBUser.email.ilike(f'%{search}%')
                )
            )

        total = query.count()
        users = query.order_by(DBUser.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
        return [UserModel._model_to_dict(user) for user in users], total

    @staticmethod
    def count_by_role() -> Dict[str, int]:
        db = get_db()
        counts = {role: 0 for role in Role.get_all() if role != Role.GUEST.value}
        for role, count in db.query(DBUser.role, func.count(DBUser.uid)).group_by(DBUser.role).all():
            counts[role] = count
        return counts

    @staticmethod
    def count_created_since(since: datetime) -> int:
        db = get_db()
        return db.query(DBUser).filter(DBUser.created_at >= since).count()

    # ----------------------------------------------------------- mutations

    @staticmethod
    def record_login(uid: str) -> bool:
        """Count one successful authentication"""
        return UserModel._update(
            uid,
            login_count=DBUser.login_count + 1,
            last_login=datetime.utcnow(),
        )

    @staticmethod
    def apply_upgrade(uid: str, result: UpgradeResult) -> bool:
        """
        Persist an upgrade decision.

        The role is swapped only if it still equals the role the decision was
        made from, so a concurrent role change is never overwritten.
        """
        if not result.upgraded:
            return False
        applied = UserModel._update(
            uid,
            DBUser.role == result.previous_role.value,
            role=result.new_role.value,
            is_privileged=is_privileged(result.new_role),
        )
        if applied:
            logger.info(f"User {uid} upgraded from {result.previous_role} to {result.new_role}")
        else:
            logger.info(f"Upgrade of {uid} skipped: role changed since evaluation")
        return applied

    @staticmethod
    def set_role(uid: str, role: Role | str) -> bool:
        """Administrative role override"""
        parsed = Role.parse(role)
        if parsed is None:
            raise ValueError(f"Invalid role: {role}")
        return UserModel._update(uid, role=parsed.value, is_privileged=is_privileged(parsed))

    @staticmethod
    def record_exam_activity(uid: str, completed: bool = False, score: Optional[float] = None) -> bool:
        """Count a new exam record and, when completed, fold its score into the average"""
        values = {'total_exams': DBUser.total_exams + 1}
        if completed:
            values['completed_exams'] = DBUser.completed_exams + 1
            if score is not None:
                values['average_score'] = (
                    (DBUser.average_score * DBUser.completed_exams + float(score))
                    / (DBUser.completed_exams + 1)
                )
        return UserModel._update(uid, **values)

    @staticmethod
    def update_profile(uid: str, fields: Dict[str, Any], role: Optional[Role] = None) -> bool:
        """Update whitelisted profile fields and, for administrators, the role in the same statement"""
        values = {key: value for key, value in fields.items() if key in PROFILE_FIELDS}
        if role is not None:
            values['role'] = role.value
            values['is_privileged'] = is_privileged(role)
        if not values:
            return UserModel.get_user_by_uid(uid) is not None
        return UserModel._update(uid, **values)

    @staticmethod
    def delete_user(uid: str) -> bool:
        """Delete an account; links and inbox go with it"""
        db = get_db()
        try:
            deleted = db.query(DBUser).filter(DBUser.uid == uid).delete(synchronize_session=False)
            db.commit()
            if deleted:
                logger.info(f"Deleted user {uid}")
            return deleted == 1
        except Exception as e:
            logger.error(f"Error deleting user {uid}: {str(e)}", exc_info=True)
            db.rollback()
            raise

    # --------------------------------------------------------- connections

    @staticmethod
    def link_accounts(teacher: UserAccount, student: UserAccount) -> bool:
        """
        Insert the teacher/student link.

        The unique constraint on the pair serializes concurrent requests: the
        loser gets an IntegrityError and reports the pair as already linked.
        Snapshots are updated only when the row was created.
        """
        db = get_db()
        try:
            db.add(DBConnection(
                teacher_uid=teacher.id,
                student_uid=student.id,
                status=ConnectionStatus.ACTIVE.value,
            ))
            db.commit()
        except IntegrityError:
            db.rollback()
            return False
        except Exception as e:
            logger.error(f"Error linking {teacher.id} and {student.id}: {str(e)}", exc_info=True)
            db.rollback()
            raise

        teacher.add_connection(student.id, ConnectionStatus.ACTIVE)
        student.add_connection(teacher.id, ConnectionStatus.ACTIVE)
        return True

    @staticmethod
    def set_connection_status(teacher_uid: str, student_uid: str,
                              status: ConnectionStatus | str) -> bool:
        status = ConnectionStatus(status)
        db = get_db()
        try:
            result = db.execute(
                update(DBConnection)
                .where(DBConnection.teacher_uid == teacher_uid,
                       DBConnection.student_uid == student_uid)
                .values(status=status.value, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1
        except Exception as e:
            logger.error(f"Error updating connection {teacher_uid}/{student_uid}: {str(e)}", exc_info=True)
            db.rollback()
            raise

    @staticmethod
    def count_active_connections(teacher_uid: str) -> int:
        db = get_db()
        return db.query(DBConnection).filter(
            DBConnection.teacher_uid == teacher_uid,
            DBConnection.status == ConnectionStatus.ACTIVE.value
        ).count()

    @staticmethod
    def is_actively_connected(teacher_uid: str, student_uid: str) -> bool:
        db = get_db()
        return db.query(DBConnection).filter(
            DBConnection.teacher_uid == teacher_uid,
            DBConnection.student_uid == student_uid,
            DBConnection.status == ConnectionStatus.ACTIVE.value
        ).first() is not None

    @staticmethod
    def connected_students(teacher_uid: str) -> List[Dict[str, Any]]:
        """Students linked to a teacher, with link status"""
        db = get_db()
        rows = db.query(DBUser, DBConnection.status).join(
            DBConnection, DBConnection.student_uid == DBUser.uid
        ).filter(DBConnection.teacher_uid == teacher_uid).order_by(DBConnection.created_at.asc()).all()
        return [UserModel._summary(user, status) for user, status in rows]

    @staticmethod
    def connected_teachers(student_uid: str) -> List[Dict[str, Any]]:
        """Teachers linked to a student, with link status"""
        db = get_db()
        rows = db.query(DBUser, DBConnection.status).join(
            DBConnection, DBConnection.teacher_uid == DBUser.uid
        ).filter(DBConnection.student_uid == student_uid).order_by(DBConnection.created_at.asc()).all()
        return [UserModel._summary(user, status) for user, status in rows]

    @staticmethod
    def _summary(user, status) -> Dict[str, Any]:
        return {
            'uid': user.uid,
            'display_name': user.display_name,
            'email': user.email,
            'role': user.role,
            'photo_url': user.photo_url,
            'status': status,
            'exam_progress': {
                'total_exams': user.total_exams,
                'completed_exams': user.completed_exams,
                'average_score': user.average_score,
            },
            'created_at': user.created_at.isoformat() if user.created_at else None,
        }
