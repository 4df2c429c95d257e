"""
Account snapshots consumed by the RBAC engine.

These are decoupled from the SQLAlchemy rows: the store builds a snapshot,
the engine decides, and the store persists the decision atomically.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from examtracker.rbac.roles import Role, DEFAULT_ROLE, is_privileged


class ConnectionStatus(str, Enum):
    """Status of a teacher/student link"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ExamActivity:
    total_exams: int = 0
    completed_exams: int = 0
    average_score: float = 0.0


@dataclass
class UserAccount:
    """Snapshot of a user account as seen by the role engine"""
    id: str
    role: Role = DEFAULT_ROLE
    login_count: int = 0
    exam_activity: ExamActivity = field(default_factory=ExamActivity)
    # other account id -> link status
    connections: dict[str, ConnectionStatus] = field(default_factory=dict)
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return is_privileged(self.role)

    @property
    def total_exams(self) -> int:
        return self.exam_activity.total_exams

    def with_role(self, role: Role) -> 'UserAccount':
        """Copy of this snapshot carrying a different role."""
        return replace(self, role=role, connections=dict(self.connections))

    def is_connected_to(self, other_id: str) -> bool:
        """True when any link (whatever its status) exists with the other account."""
        return other_id in self.connections

    def add_connection(self, other_id: str, status: ConnectionStatus = ConnectionStatus.ACTIVE) -> bool:
        """Record a link to another account. Returns False if one already existed."""
        if other_id in self.connections:
            return False
        self.connections[other_id] = status
        return True

    def active_connections(self) -> list[str]:
        return [other for other, status in self.connections.items()
                if status == ConnectionStatus.ACTIVE]

    def to_dict(self) -> dict:
        return {
            'uid': self.id,
            'email': self.email,
            'display_name': self.display_name,
            'role': self.role.value,
            'is_privileged': self.is_privileged,
            'login_count': self.login_count,
            'exam_progress': {
                'total_exams': self.exam_activity.total_exams,
                'completed_exams': self.exam_activity.completed_exams,
                'average_score': self.exam_activity.average_score,
            },
            'connections': {other: status.value for other, status in self.connections.items()},
        }
