"""Tests for the create_admin.py command-line helper."""

from sqlalchemy import create_engine, insert, select

from create_admin import create_admin
from examtracker.models.database_models import User


def read_user(database_url, email):
    engine = create_engine(database_url)
    with engine.connect() as conn:
        row = conn.execute(select(User.role, User.is_privileged).where(User.email == email)).first()
    engine.dispose()
    return row


class TestCreateAdmin:
    def test_creates_database_directory(self, tmp_path):
        database_url = f"sqlite:///{tmp_path / 'instance' / 'examtracker.db'}"

        uid = create_admin("Root@Test.com", "s3cret", database_url=database_url)

        assert uid
        assert (tmp_path / "instance" / "examtracker.db").exists()
        role, privileged = read_user(database_url, "root@test.com")
        assert role == "admin"
        assert privileged is True

    def test_promotes_existing_account(self, tmp_path):
        database_url = f"sqlite:///{tmp_path / 'admin.db'}"
        create_admin("root@test.com", "s3cret", database_url=database_url)
        engine = create_engine(database_url)
        with engine.begin() as conn:
            conn.execute(insert(User).values(uid="student-9", email="pupil@test.com",
                                             display_name="Pupil", role="student",
                                             is_privileged=False))
        engine.dispose()

        assert create_admin("pupil@test.com", database_url=database_url) == "student-9"
        assert tuple(read_user(database_url, "pupil@test.com")) == ("admin", True)

    def test_new_account_needs_password(self, tmp_path):
        database_url = f"sqlite:///{tmp_path / 'admin.db'}"
        assert create_admin("nobody@test.com", database_url=database_url) is None
