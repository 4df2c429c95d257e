"""Tests for teacher/student connections in the engine."""

import pytest

from examtracker.rbac.account import ConnectionStatus, UserAccount
from examtracker.rbac.connections import ConnectOutcome, connect_teacher_student
from examtracker.rbac.errors import ConnectionPermissionError
from examtracker.rbac.roles import Role


def account(uid, role):
    return UserAccount(id=uid, role=role)


class TestConnectTeacherStudent:
    def test_connects_both_sides(self):
        teacher, student = account("t", Role.TEACHER), account("s", Role.STUDENT)
        result = connect_teacher_student(teacher, student)

        assert result.outcome == ConnectOutcome.CONNECTED
        assert result.created
        assert teacher.connections == {"s": ConnectionStatus.ACTIVE}
        assert student.connections == {"t": ConnectionStatus.ACTIVE}

    def test_second_call_reports_already_connected(self):
        teacher, student = account("t", Role.TEACHER), account("s", Role.STUDENT)
        connect_teacher_student(teacher, student)
        result = connect_teacher_student(teacher, student)

        assert result.outcome == ConnectOutcome.ALREADY_CONNECTED
        assert not result.created
        assert len(teacher.connections) == 1
        assert len(student.connections) == 1

    def test_existing_inactive_link_is_not_duplicated(self):
        teacher, student = account("t", Role.TEACHER), account("s", Role.STUDENT)
        teacher.add_connection("s", ConnectionStatus.INACTIVE)
        result = connect_teacher_student(teacher, student)

        assert result.outcome == ConnectOutcome.ALREADY_CONNECTED
        assert teacher.connections["s"] == ConnectionStatus.INACTIVE
        assert student.connections == {}

    @pytest.mark.parametrize("teacher_role", [Role.TEACHER, Role.ADMIN])
    @pytest.mark.parametrize("student_role", [Role.STUDENT, Role.ADVANCED])
    def test_allowed_role_pairs(self, teacher_role, student_role):
        result = connect_teacher_student(account("t", teacher_role), account("s", student_role))
        assert result.created

    @pytest.mark.parametrize("role", [Role.GUEST, Role.STUDENT, Role.ADVANCED])
    def test_teacher_side_refused(self, role):
        teacher, student = account("t", role), account("s", Role.STUDENT)
        with pytest.raises(ConnectionPermissionError) as exc:
            connect_teacher_student(teacher, student)

        assert exc.value.side == "teacher"
        assert str(exc.value) == "Only teachers can connect with students"
        assert teacher.connections == {} and student.connections == {}

    @pytest.mark.parametrize("role", [Role.GUEST, Role.TEACHER, Role.ADMIN])
    def test_student_side_refused(self, role):
        teacher, other = account("t", Role.TEACHER), account("x", role)
        with pytest.raises(ConnectionPermissionError) as exc:
            connect_teacher_student(teacher, other)

        assert exc.value.side == "student"
        assert str(exc.value) == "Can only connect with students"
        assert teacher.connections == {}

    def test_teacher_side_checked_first(self):
        with pytest.raises(ConnectionPermissionError) as exc:
            connect_teacher_student(account("a", Role.STUDENT), account("b", Role.TEACHER))
        assert exc.value.side == "teacher"

    def test_custom_linker_decides_outcome(self):
        calls = []

        def linker(teacher, student):
            calls.append((teacher.id, student.id))
            return False

        result = connect_teacher_student(account("t", Role.TEACHER), account("s", Role.STUDENT), link=linker)
        assert calls == [("t", "s")]
        assert result.outcome == ConnectOutcome.ALREADY_CONNECTED

    def test_linker_not_called_when_refused(self):
        def linker(teacher, student):
            raise AssertionError("must not link")

        with pytest.raises(ConnectionPermissionError):
            connect_teacher_student(account("t", Role.STUDENT), account("s", Role.STUDENT), link=linker)


class TestUserAccount:
    def test_privileged_is_derived(self):
        acc = account("a", Role.STUDENT)
        assert acc.is_privileged is False
        assert acc.with_role(Role.ADMIN).is_privileged is True

    def test_privileged_cannot_be_assigned(self):
        acc = account("a", Role.ADMIN)
        with pytest.raises(AttributeError):
            acc.is_privileged = False

    def test_with_role_copies_connections(self):
        acc = account("a", Role.TEACHER)
        acc.add_connection("s")
        copy = acc.with_role(Role.ADMIN)
        copy.add_connection("s2")
        assert "s2" not in acc.connections

    def test_active_connections(self):
        acc = account("t", Role.TEACHER)
        acc.add_connection("s1")
        acc.add_connection("s2", ConnectionStatus.BLOCKED)
        assert acc.active_connections() == ["s1"]

    def test_to_dict(self):
        acc = account("a", Role.ADMIN)
        data = acc.to_dict()
        assert data["role"] == "admin"
        assert data["is_privileged"] is True
        assert data["connections"] == {}
