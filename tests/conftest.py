"""
Test fixtures for Exam Tracker.

Provides app, client and per-role logged-in clients backed by a file-based
SQLite database.
"""

import sys
from pathlib import Path

import pytest
from sqlalchemy import update
from werkzeug.security import generate_password_hash

sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_PASSWORD = "Testpass123"
TEACHER_CODE = "TEACH-2024"

SEED_USERS = [
    # uid, email, display name, role
    ("student-1", "student@test.com", "Test Student", "student"),
    ("student-2", "student2@test.com", "Second Student", "student"),
    ("advanced-1", "advanced@test.com", "Advanced Student", "advanced"),
    ("teacher-1", "teacher@test.com", "Test Teacher", "teacher"),
    ("teacher-2", "teacher2@test.com", "Other Teacher", "teacher"),
    ("admin-1", "admin@test.com", "Test Admin", "admin"),
]


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from examtracker import create_app

    db_file = tmp_path / "test.db"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_file}",
        "SECRET_KEY": "test-secret-key",
        "LOG_TO_FILE": False,
        "TEACHER_REGISTRATION_CODE": TEACHER_CODE,
    })

    with app.app_context():
        from examtracker.models import UserModel

        password_hash = generate_password_hash(TEST_PASSWORD)
        for uid, email, name, role in SEED_USERS:
            UserModel.create_user(uid, email, name, role=role,
                                  password_hash=password_hash, login_count=0)

    yield app

    app.extensions["db_engine"].dispose()


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


def login_as(client, uid):
    """Attach an authenticated session for uid to the client."""
    with client.session_transaction() as sess:
        sess["user_id"] = uid
    return client


def set_activity(app, uid, login_count=None, total_exams=None):
    """Put an account's counters at a given value."""
    from examtracker.models.database_models import User
    from examtracker.utils.db import get_db

    values = {}
    if login_count is not None:
        values["login_count"] = login_count
    if total_exams is not None:
        values["total_exams"] = total_exams

    with app.app_context():
        db = get_db()
        db.execute(update(User).where(User.uid == uid).values(**values))
        db.commit()


def fetch_user(app, uid):
    from examtracker.models import UserModel

    with app.app_context():
        return UserModel.get_user_by_uid(uid)


@pytest.fixture
def student_client(app):
    return login_as(app.test_client(), "student-1")


@pytest.fixture
def advanced_client(app):
    return login_as(app.test_client(), "advanced-1")


@pytest.fixture
def teacher_client(app):
    return login_as(app.test_client(), "teacher-1")


@pytest.fixture
def admin_client(app):
    return login_as(app.test_client(), "admin-1")
