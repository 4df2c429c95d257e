"""Tests for the admin blueprint: statistics, role management and site settings."""

from conftest import fetch_user

JSON = {"Accept": "application/json"}


class TestAdminDashboard:
    def test_stats(self, admin_client):
        data = admin_client.get("/admin/?range=30d").get_json()
        users = data["stats"]["users"]

        assert users["total"] == 6
        assert users["student"] == 2
        assert users["teacher"] == 2
        assert users["admin"] == 1
        assert users["online"] == int(6 * 0.15)
        assert users["new_today"] == 6
        assert data["stats"]["range"] == "30d"

    def test_unknown_range_falls_back(self, admin_client):
        assert admin_client.get("/admin/?range=forever").get_json()["stats"]["range"] == "7d"

    def test_teacher_denied(self, teacher_client):
        assert teacher_client.get("/admin/", headers=JSON).status_code == 403

    def test_list_users_search(self, admin_client):
        data = admin_client.get("/admin/users?search=teacher").get_json()
        assert data["total"] == 2


class TestRoleManagement:
    def test_grant_teacher(self, app, admin_client):
        resp = admin_client.put("/admin/users/advanced-1/role", json={"role": "teacher"})
        assert resp.status_code == 200
        assert fetch_user(app, "advanced-1")["role"] == "teacher"

    def test_grant_admin_sets_flag(self, app, admin_client):
        admin_client.put("/admin/users/teacher-1/role", json={"role": "admin"})
        assert fetch_user(app, "teacher-1")["is_privileged"] is True

    def test_invalid_role(self, admin_client):
        assert admin_client.put("/admin/users/student-1/role", json={"role": "guest"}).status_code == 400
        assert admin_client.put("/admin/users/student-1/role", json={"role": "god"}).status_code == 400

    def test_cannot_demote_self(self, admin_client):
        resp = admin_client.put("/admin/users/admin-1/role", json={"role": "student"})
        assert resp.status_code == 400

    def test_missing_user(self, admin_client):
        assert admin_client.put("/admin/users/ghost/role", json={"role": "teacher"}).status_code == 404


class TestSettingsEndpoints:
    def test_get_defaults(self, admin_client):
        settings = admin_client.get("/admin/settings").get_json()["settings"]
        assert settings["site_name"] == "SSC Exam Tracker"
        assert settings["max_users_per_teacher"] == 50
        assert settings["features"]["messaging"] is True

    def test_get_category(self, admin_client):
        settings = admin_client.get("/admin/settings?category=upload").get_json()["settings"]
        assert set(settings) == {"max_upload_size", "allowed_file_types"}

    def test_update(self, admin_client):
        resp = admin_client.put("/admin/settings", json={"site_name": "Mock Exams", "features": {"blogging": False}})
        assert resp.status_code == 200
        settings = resp.get_json()["settings"]
        assert settings["site_name"] == "Mock Exams"
        assert settings["features"]["blogging"] is False
        assert settings["features"]["messaging"] is True
        assert settings["last_updated"] is not None

    def test_update_validation(self, admin_client):
        resp = admin_client.put("/admin/settings", json={"max_upload_size": 500})
        assert resp.status_code == 400
        assert any("max_upload_size" in detail for detail in resp.get_json()["details"])

    def test_update_unknown_key(self, admin_client):
        assert admin_client.put("/admin/settings", json={"theme": "dark"}).status_code == 400

    def test_update_read_only(self, admin_client):
        assert admin_client.put("/admin/settings", json={"version": "9.9"}).status_code == 400

    def test_update_empty(self, admin_client):
        assert admin_client.put("/admin/settings", json={}).status_code == 400

    def test_reset(self, admin_client):
        admin_client.put("/admin/settings", json={"site_name": "Changed"})
        resp = admin_client.post("/admin/settings", json={"action": "reset"})
        assert resp.get_json()["settings"]["site_name"] == "SSC Exam Tracker"

    def test_backup(self, admin_client):
        resp = admin_client.post("/admin/settings", json={"action": "backup"})
        backup = resp.get_json()["backup"]
        assert backup["admin_id"] == "admin-1"
        assert backup["settings"]["site_name"] == "SSC Exam Tracker"

    def test_unknown_action(self, admin_client):
        assert admin_client.post("/admin/settings", json={"action": "explode"}).status_code == 400

    def test_reset_key(self, admin_client):
        admin_client.put("/admin/settings", json={"max_users_per_teacher": 5})
        resp = admin_client.delete("/admin/settings?key=max_users_per_teacher")
        assert resp.get_json()["settings"]["max_users_per_teacher"] == 50

    def test_reset_category(self, admin_client):
        admin_client.put("/admin/settings", json={"features": {"messaging": False}})
        resp = admin_client.delete("/admin/settings?category=features")
        assert resp.get_json()["settings"]["features"]["messaging"] is True

    def test_reset_requires_target(self, admin_client):
        assert admin_client.delete("/admin/settings").status_code == 400
        assert admin_client.delete("/admin/settings?key=nonsense").status_code == 400
        assert admin_client.delete("/admin/settings?category=nonsense").status_code == 400

    def test_settings_admin_only(self, teacher_client):
        assert teacher_client.put("/admin/settings", json={"site_name": "x"}).status_code == 403
