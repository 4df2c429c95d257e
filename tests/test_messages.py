"""Tests for direct messaging between connected teachers and students."""

from conftest import login_as


def connect(teacher_client, student_uid="student-1"):
    resp = teacher_client.post("/api/users/connect", json={"student_uid": student_uid})
    assert resp.status_code in (200, 201)


class TestSendMessage:
    def test_teacher_to_connected_student(self, app, teacher_client):
        connect(teacher_client)
        resp = teacher_client.post("/api/messages/", json={
            "recipient_uid": "student-1", "message": "Great progress!", "type": "teacher_to_student",
        })
        assert resp.status_code == 201

        student = login_as(app.test_client(), "student-1")
        inbox = student.get("/api/messages/").get_json()
        assert inbox["unread"] == 1
        assert inbox["messages"][0]["from_name"] == "Test Teacher"
        assert inbox["messages"][0]["message"] == "Great progress!"

    def test_teacher_to_unconnected_student(self, teacher_client):
        resp = teacher_client.post("/api/messages/", json={
            "recipient_uid": "student-2", "message": "Hello", "type": "teacher_to_student",
        })
        assert resp.status_code == 403

    def test_blocked_link_stops_messages(self, teacher_client):
        connect(teacher_client)
        teacher_client.patch("/api/users/connect", json={
            "teacher_uid": "teacher-1", "student_uid": "student-1", "status": "blocked",
        })
        resp = teacher_client.post("/api/messages/", json={
            "recipient_uid": "student-1", "message": "Hello", "type": "teacher_to_student",
        })
        assert resp.status_code == 403

    def test_student_cannot_send_teacher_messages(self, student_client):
        resp = student_client.post("/api/messages/", json={
            "recipient_uid": "student-2", "message": "Hi", "type": "teacher_to_student",
        })
        assert resp.status_code == 403

    def test_student_replies_to_teacher(self, app, teacher_client):
        connect(teacher_client)
        student = login_as(app.test_client(), "student-1")
        resp = student.post("/api/messages/", json={
            "recipient_uid": "teacher-1", "message": "Thanks!", "type": "student_to_teacher",
        })
        assert resp.status_code == 201

    def test_admin_messages_anyone(self, admin_client):
        resp = admin_client.post("/api/messages/", json={
            "recipient_uid": "student-2", "message": "Welcome", "type": "system",
        })
        assert resp.status_code == 201

    def test_system_messages_admin_only(self, teacher_client):
        resp = teacher_client.post("/api/messages/", json={
            "recipient_uid": "student-1", "message": "Notice", "type": "system",
        })
        assert resp.status_code == 403

    def test_validation(self, teacher_client):
        assert teacher_client.post("/api/messages/", json={"recipient_uid": "student-1"}).status_code == 400
        resp = teacher_client.post("/api/messages/", json={
            "recipient_uid": "student-1", "message": "x", "type": "smoke_signal",
        })
        assert resp.status_code == 400

    def test_unknown_recipient(self, teacher_client):
        resp = teacher_client.post("/api/messages/", json={"recipient_uid": "ghost", "message": "x"})
        assert resp.status_code == 404

    def test_messaging_disabled(self, app, teacher_client):
        connect(teacher_client)
        with app.app_context():
            app.extensions["settings_store"].update({"features": {"messaging": False}})
        resp = teacher_client.post("/api/messages/", json={"recipient_uid": "student-1", "message": "x"})
        assert resp.status_code == 403


class TestInbox:
    def test_requires_login(self, client):
        assert client.get("/api/messages/").status_code == 401

    def test_mark_read(self, app, admin_client):
        resp = admin_client.post("/api/messages/", json={
            "recipient_uid": "student-1", "message": "Welcome", "type": "system",
        })
        message_id = resp.get_json()["id"]

        other = login_as(app.test_client(), "student-2")
        assert other.post(f"/api/messages/{message_id}/read").status_code == 404

        student = login_as(app.test_client(), "student-1")
        assert student.post(f"/api/messages/{message_id}/read").status_code == 200
        assert student.get("/api/messages/").get_json()["unread"] == 0
