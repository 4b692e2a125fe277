# backend/orgdb/scripts/seed_superuser.py
"""
Seed the default roles and a platform superuser.

    SEED_SUPERUSER_EMAIL=admin@example.org \
    SEED_SUPERUSER_PASSWORD=... \
    python -m orgdb.scripts.seed_superuser

Without SEED_SUPERUSER_PASSWORD a temporary password is generated, printed
once and the account is flagged `must_change_password`.
"""

import os
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from orgdb.apps.accounts import services as account_services
from orgdb.apps.accounts.models import User
from orgdb.database import SessionLocal
from orgdb.security import get_password_hash
from orgdb.utils.identifiers import generate_temporary_password

EMAIL = os.getenv("SEED_SUPERUSER_EMAIL", "admin@structure.local")
USERNAME = os.getenv("SEED_SUPERUSER_USERNAME", "superadmin")
PASSWORD = os.getenv("SEED_SUPERUSER_PASSWORD")


def ensure_superuser(
    db: Session,
    *,
    email: str,
    username: str,
    password: Optional[str],
    role_id: Optional[int] = None,
) -> Tuple[User, Optional[str]]:
    """
    Create or repair the superuser. Returns (user, generated_password); an
    existing account keeps its password.
    """
    email = email.lower().strip()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        existing.is_superuser = True
        existing.is_active = True
        if role_id is not None:
            existing.role_id = role_id
        db.add(existing)
        db.flush()
        return existing, None

    generated = None
    if not password:
        generated = generate_temporary_password()
        password = generated

    user = User(
        email=email,
        username=username,
        role_id=role_id,
        is_active=True,
        is_superuser=True,
        must_change_password=generated is not None,
        hashed_password=get_password_hash(password),
    )
    db.add(user)
    db.flush()
    return user, generated


def main() -> None:
    db = SessionLocal()
    try:
        roles = account_services.ensure_default_roles(db)
        user, generated = ensure_superuser(
            db,
            email=EMAIL,
            username=USERNAME,
            password=PASSWORD,
            role_id=roles["super_admin"].id,
        )
        db.commit()

        print("OK: roles =", ", ".join(sorted(roles)))
        print("OK:", user.email, "superuser =", user.is_superuser)
        if generated:
            print("Temporary password (shown once):", generated)
    finally:
        db.close()


if __name__ == "__main__":
    main()
