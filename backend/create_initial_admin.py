# backend/create_initial_admin.py
"""
Create the first ACTIVE admin account from INITIAL_ADMIN_EMAIL /
INITIAL_ADMIN_PASSWORD. Does nothing when the email is already taken.
"""

import os

from formadb.database import session_scope
from formadb.apps.accounts.models import Role, User, UserStatus, normalize_email
from formadb.security import get_password_hash


def main() -> None:
    email = normalize_email(os.getenv("INITIAL_ADMIN_EMAIL", "admin@formation.example.com"))
    password = os.getenv("INITIAL_ADMIN_PASSWORD", "ChangeMe123!")
    name = os.getenv("INITIAL_ADMIN_NAME", "Administrateur")

    with session_scope() as db:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"[INFO] User already exists: id={existing.id}, role={existing.role.value}")
            return

        user = User(
            name=name,
            email=email,
            role=Role.ADMIN,
            status=UserStatus.ACTIVE,
            hashed_password=get_password_hash(password),
        )
        db.add(user)
        db.flush()
        print(f"[OK] Created admin {user.email} ({user.id}); change the password after first login.")


if __name__ == "__main__":
    main()
