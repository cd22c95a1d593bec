#!/usr/bin/env python3
"""
Reset passwords for accounts whose hash column holds something the login
path cannot verify (plaintext or hand-written values from a bulk import).

    python scripts/rehash_user_passwords.py --password 'Temp#2026' --role formateur --dry-run
"""

import argparse
from typing import List, Optional

from sqlalchemy.orm import Session

from formadb.database import session_scope
from formadb.security import get_password_hash, password_needs_rehash
from formadb.apps.accounts import models
from formadb.apps.accounts.models import normalize_email, normalize_role

_VERIFIABLE_PREFIXES = ("$argon2", "$2a$", "$2b$", "$2y$")


def _needs_reset(user: models.User, *, force: bool) -> bool:
    stored = user.hashed_password or ""
    return force or not stored.startswith(_VERIFIABLE_PREFIXES)


def _select_users(db: Session, role: Optional[str], email: Optional[str]) -> List[models.User]:
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == normalize_role(role))
    if email:
        query = query.filter(models.User.email == normalize_email(email))
    return query.order_by(models.User.email).all()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--password", required=True, help="Plaintext password to set on the matched accounts.")
    parser.add_argument("--role", help="Only this role; legacy labels such as 'formateur' are accepted.")
    parser.add_argument("--email", help="Only this account.")
    parser.add_argument("--force", action="store_true", help="Reset even accounts with a verifiable hash.")
    parser.add_argument("--dry-run", action="store_true", help="List the accounts without writing.")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()

    with session_scope() as db:
        users = _select_users(db, args.role, args.email)
        targets = [u for u in users if _needs_reset(u, force=args.force)]
        print(f"{len(users)} account(s) matched, {len(targets)} to reset.")

        for user in targets:
            print(f"- {user.email} ({user.id}, {user.role.value})")
            if not args.dry_run:
                user.hashed_password = get_password_hash(args.password)

        if args.dry_run:
            db.rollback()
            print("Dry run: nothing written.")
            return

        outdated = [u for u in users if u not in targets and password_needs_rehash(u.hashed_password)]
        if outdated:
            print(f"{len(outdated)} account(s) keep a legacy hash and upgrade on their next login.")


if __name__ == "__main__":
    main()
