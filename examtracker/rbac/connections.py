"""
Teacher/student connections
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from examtracker.rbac.account import UserAccount, ConnectionStatus
from examtracker.rbac.errors import ConnectionPermissionError
from examtracker.rbac.roles import Role

TEACHER_SIDE_ROLES = frozenset({Role.TEACHER, Role.ADMIN})
STUDENT_SIDE_ROLES = frozenset({Role.STUDENT, Role.ADVANCED})


class ConnectOutcome(str, Enum):
    CONNECTED = "connected"
    ALREADY_CONNECTED = "already_connected"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ConnectResult:
    outcome: ConnectOutcome
    teacher_id: str
    student_id: str

    @property
    def created(self) -> bool:
        return self.outcome == ConnectOutcome.CONNECTED


# link(teacher, student) records the pair and reports whether it was new
Linker = Callable[[UserAccount, UserAccount], bool]


def ensure_can_connect(teacher: UserAccount, student: UserAccount) -> None:
    """
    Raise ConnectionPermissionError naming the side whose role does not allow the link.
    """
    if teacher.role not in TEACHER_SIDE_ROLES:
        raise ConnectionPermissionError('teacher', teacher.role)
    if student.role not in STUDENT_SIDE_ROLES:
        raise ConnectionPermissionError('student', student.role)


def link_in_memory(teacher: UserAccount, student: UserAccount) -> bool:
    """Record the link on both snapshots, or on neither if either side already has it."""
    if teacher.is_connected_to(student.id) or student.is_connected_to(teacher.id):
        return False
    teacher.add_connection(student.id, ConnectionStatus.ACTIVE)
    student.add_connection(teacher.id, ConnectionStatus.ACTIVE)
    return True


def connect_teacher_student(teacher: UserAccount, student: UserAccount,
                            link: Optional[Linker] = None) -> ConnectResult:
    """
    Connect a teacher (or admin) with a student (or advanced student).

    Preconditions are checked before anything is written. The link itself
    is recorded by a single `link` call, which must be atomic per pair; the
    storage-backed linker relies on a unique constraint for that.

    Raises:
        ConnectionPermissionError: either account has the wrong role
    """
    ensure_can_connect(teacher, student)
    if link is None:
        link = link_in_memory

    created = link(teacher, student)
    outcome = ConnectOutcome.CONNECTED if created else ConnectOutcome.ALREADY_CONNECTED
    return ConnectResult(outcome=outcome, teacher_id=teacher.id, student_id=student.id)
