#!/usr/bin/env python3
"""
Standalone script to grant the admin role.
Usage: python create_admin.py EMAIL [PASSWORD] [DISPLAY_NAME]

An existing account with EMAIL is promoted; otherwise a new admin account is
created, which needs PASSWORD.
"""

import sys
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import sessionmaker
from werkzeug.security import generate_password_hash

from examtracker.config import Config
from examtracker.models.database_models import Base, User
from examtracker.utils.db import _create_engine
from examtracker.rbac.roles import Role, is_privileged

DATABASE_URL = Config.SQLALCHEMY_DATABASE_URI


def create_admin(email, password=None, display_name=None, database_url=None):
    """
    Promote or create an admin account.

    Args:
        email: Account email (required)
        password: Password for a new account; ignored when promoting
        display_name: Display name for a new account, defaults to the email's local part
        database_url: Database to write to, defaults to the configured one

    Returns:
        uid of the admin account, or None on failure
    """
    email = email.strip().lower()
    engine = _create_engine(database_url or DATABASE_URL, Config.SQLALCHEMY_ENGINE_OPTIONS)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    try:
        existing = session.query(User).filter(User.email == email).first()
        if existing:
            if existing.role == Role.ADMIN.value:
                print(f"ℹ️  {email} is already an admin")
                return existing.uid

            # Role and the derived flag move together
            session.execute(
                update(User)
                .where(User.uid == existing.uid)
                .values(role=Role.ADMIN.value, is_privileged=is_privileged(Role.ADMIN),
                        updated_at=datetime.utcnow())
            )
            session.commit()
            print(f"✅ Promoted {email} from {existing.role} to admin")
            return existing.uid

        if not password:
            print("❌ Error: a password is required to create a new admin account")
            return None

        uid = uuid.uuid4().hex
        session.add(User(
            uid=uid,
            email=email,
            display_name=display_name or email.split('@')[0],
            password_hash=generate_password_hash(password),
            role=Role.ADMIN.value,
            is_privileged=is_privileged(Role.ADMIN),
            login_count=0,
        ))
        session.commit()
        print(f"✅ Created admin account {email}")
        print(f"   UID: {uid}")
        return uid

    except Exception as e:
        print(f"❌ Error creating admin: {str(e)}")
        session.rollback()
        return None
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    email = sys.argv[1]
    password = sys.argv[2] if len(sys.argv) > 2 else None
    display_name = sys.argv[3] if len(sys.argv) > 3 else None

    print(f"Database: {DATABASE_URL.split('@')[-1] if '@' in DATABASE_URL else DATABASE_URL}")
    sys.exit(0 if create_admin(email, password, display_name) else 1)
