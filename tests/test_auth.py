"""Tests for auth routes: register, login with upgrade, logout, session check."""

from conftest import TEACHER_CODE, TEST_PASSWORD, fetch_user, login_as, set_activity


def disable_registration(app):
    with app.app_context():
        app.extensions["settings_store"].update({"registration_enabled": False}, admin_uid="admin-1")


class TestRegister:
    def test_register_student(self, app, client):
        resp = client.post("/auth/register", json={
            "display_name": "New Student",
            "email": "new@test.com",
            "password": "Securepass1",
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["role"] == "student"

        user = fetch_user(app, data["uid"])
        assert user["login_count"] == 0
        assert user["is_privileged"] is False

    def test_register_with_form_data(self, client):
        resp = client.post("/auth/register", data={
            "display_name": "Form User",
            "email": "form@test.com",
            "password": "Securepass1",
        })
        assert resp.status_code == 201

    def test_missing_fields(self, client):
        resp = client.post("/auth/register", json={"email": "x@test.com"})
        assert resp.status_code == 400
        assert "display_name" in resp.get_json()["error"]

    def test_short_password(self, client):
        resp = client.post("/auth/register", json={
            "display_name": "Short", "email": "short@test.com", "password": "abc",
        })
        assert resp.status_code == 400

    def test_duplicate_email(self, client):
        resp = client.post("/auth/register", json={
            "display_name": "Dup", "email": "STUDENT@test.com", "password": "Securepass1",
        })
        assert resp.status_code == 409

    def test_cannot_register_as_admin(self, client):
        resp = client.post("/auth/register", json={
            "display_name": "Sneaky", "email": "sneaky@test.com", "password": "Securepass1",
            "user_type": "admin",
        })
        assert resp.status_code == 400

    def test_teacher_needs_code(self, client):
        resp = client.post("/auth/register", json={
            "display_name": "Teach", "email": "teach@test.com", "password": "Securepass1",
            "user_type": "teacher", "teacher_code": "wrong",
        })
        assert resp.status_code == 403

    def test_teacher_with_code(self, app, client):
        resp = client.post("/auth/register", json={
            "display_name": "Teach", "email": "teach@test.com", "password": "Securepass1",
            "user_type": "teacher", "teacher_code": TEACHER_CODE,
        })
        assert resp.status_code == 201
        assert fetch_user(app, resp.get_json()["uid"])["role"] == "teacher"

    def test_registration_disabled(self, app, client):
        disable_registration(app)
        resp = client.post("/auth/register", json={
            "display_name": "Late", "email": "late@test.com", "password": "Securepass1",
        })
        assert resp.status_code == 403


class TestLogin:
    def test_login_success(self, app, client):
        resp = client.post("/auth/login", json={"email": "student@test.com", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["role"] == "student"
        assert data["redirect_url"] == "/dashboard"
        assert data["upgraded"] is False

        with client.session_transaction() as sess:
            assert sess["user_id"] == "student-1"
            assert sess["role"] == "student"
        assert fetch_user(app, "student-1")["login_count"] == 1

    def test_admin_redirect(self, client):
        resp = client.post("/auth/login", json={"email": "admin@test.com", "password": TEST_PASSWORD})
        assert resp.get_json()["redirect_url"] == "/admin"

    def test_wrong_password(self, client):
        resp = client.post("/auth/login", json={"email": "student@test.com", "password": "nope"})
        assert resp.status_code == 401
        with client.session_transaction() as sess:
            assert "user_id" not in sess

    def test_missing_credentials(self, client):
        resp = client.post("/auth/login", json={"email": "student@test.com"})
        assert resp.status_code == 400

    def test_tenth_login_upgrades(self, app, client):
        set_activity(app, "student-1", login_count=9, total_exams=5)
        resp = client.post("/auth/login", json={"email": "student@test.com", "password": TEST_PASSWORD})
        data = resp.get_json()

        assert data["role"] == "advanced"
        assert data["upgraded"] is True
        user = fetch_user(app, "student-1")
        assert user["role"] == "advanced"
        assert user["login_count"] == 10

    def test_not_enough_exams(self, app, client):
        set_activity(app, "student-1", login_count=40, total_exams=4)
        resp = client.post("/auth/login", json={"email": "student@test.com", "password": TEST_PASSWORD})
        assert resp.get_json()["role"] == "student"

    def test_teacher_never_auto_upgrades(self, app, client):
        set_activity(app, "teacher-1", login_count=99, total_exams=99)
        resp = client.post("/auth/login", json={"email": "teacher@test.com", "password": TEST_PASSWORD})
        assert resp.get_json()["role"] == "teacher"


class TestSession:
    def test_logout(self, client):
        login_as(client, "student-1")
        resp = client.post("/auth/logout")
        assert resp.status_code == 200
        with client.session_transaction() as sess:
            assert "user_id" not in sess

    def test_check_session_anonymous(self, client):
        data = client.get("/auth/check_session").get_json()
        assert data == {"authenticated": False, "role": "guest"}

    def test_check_session_reads_current_role(self, app, client):
        login_as(client, "teacher-1")
        with app.app_context():
            from examtracker.models import UserModel
            UserModel.set_role("teacher-1", "admin")

        data = client.get("/auth/check_session").get_json()
        assert data["authenticated"] is True
        assert data["role"] == "admin"
        assert data["is_privileged"] is True

    def test_check_session_deleted_account(self, app, client):
        login_as(client, "student-2")
        with app.app_context():
            from examtracker.models import UserModel
            UserModel.delete_user("student-2")

        data = client.get("/auth/check_session").get_json()
        assert data["authenticated"] is False
