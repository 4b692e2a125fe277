# backend/orgdb/apps/accounts/services.py

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from orgdb.database import conflict_guard
from orgdb.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    password_needs_rehash,
    token_claims_for,
    verify_password,
)
from orgdb.utils.identifiers import generate_temporary_password

from . import models
from .models import Capability

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default roles
# ---------------------------------------------------------------------------

C = Capability

DEFAULT_ROLE_CAPABILITIES: Dict[str, frozenset] = {
    "super_admin": frozenset(Capability),
    "zone_admin": frozenset(
        {
            C.CAN_VIEW_ZONE_ADMIN,
            C.CAN_CREATE_GROUP,
            C.CAN_VIEW_GROUP,
            C.CAN_VIEW_SECTOR,
            C.CAN_CREATE_WORK,
            C.CAN_VIEW_WORK,
            C.CAN_UPDATE_WORK,
            C.CAN_CREATE_WEEKLY_TASK,
            C.CAN_VIEW_WEEKLY_TASK,
            C.CAN_UPDATE_WEEKLY_TASK,
        }
    ),
    "group_admin": frozenset(
        {
            C.CAN_VIEW_GROUP,
            C.CAN_VIEW_SECTOR,
            C.CAN_CREATE_WORK,
            C.CAN_VIEW_WORK,
            C.CAN_UPDATE_WORK,
            C.CAN_CREATE_WEEKLY_TASK,
            C.CAN_VIEW_WEEKLY_TASK,
            C.CAN_UPDATE_WEEKLY_TASK,
        }
    ),
    "sector_admin": frozenset(
        {
            C.CAN_VIEW_SECTOR,
            C.CAN_VIEW_WORK,
            C.CAN_UPDATE_WORK,
            C.CAN_CREATE_WEEKLY_TASK,
            C.CAN_VIEW_WEEKLY_TASK,
            C.CAN_UPDATE_WEEKLY_TASK,
        }
    ),
    "sector_staff": frozenset(
        {
            C.CAN_VIEW_WORK,
            C.CAN_UPDATE_WORK,
            C.CAN_VIEW_WEEKLY_TASK,
            C.CAN_UPDATE_WEEKLY_TASK,
        }
    ),
}


def ensure_role(
    db: Session,
    *,
    name: str,
    capabilities: Iterable[Capability],
    description: Optional[str] = None,
) -> models.Role:
    """
    Create the role if missing and make its permission set match exactly.
    """
    role = db.query(models.Role).filter(models.Role.name == name).first()
    if role is None:
        role = models.Role(name=name, description=description)
        db.add(role)
        db.flush()

    wanted = set(capabilities)
    current = {p.capability: p for p in role.permissions}
    for capability, permission in current.items():
        if capability not in wanted:
            role.permissions.remove(permission)
    for capability in wanted - set(current):
        role.permissions.append(models.RolePermission(capability=capability))

    db.flush()
    return role


def ensure_default_roles(db: Session) -> Dict[str, models.Role]:
    return {
        name: ensure_role(db, name=name, capabilities=caps)
        for name, caps in DEFAULT_ROLE_CAPABILITIES.items()
    }


def get_role_or_404(db: Session, role_id: int) -> models.Role:
    role = db.get(models.Role, role_id)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role {role_id} not found.",
        )
    return role


def get_default_role(db: Session, name: str) -> models.Role:
    """
    Role given to provisioned accounts whose payload names no role_id.

    Created with its default capabilities when missing; an existing role
    keeps whatever capabilities it has been given since.
    """
    role = db.query(models.Role).filter(models.Role.name == name).first()
    if role is None:
        role = ensure_role(db, name=name, capabilities=DEFAULT_ROLE_CAPABILITIES[name])
    return role


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _normalise_email(value: str) -> str:
    return value.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.email == _normalise_email(email))
        .first()
    )


def get_user_or_404(db: Session, user_id: str) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found.",
        )
    return user


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


def ensure_emails_available(db: Session, emails: Iterable[str]) -> None:
    """
    Reject a provisioning batch that repeats an email or reuses an
    existing account's email.
    """
    seen: set[str] = set()
    for raw in emails:
        email = _normalise_email(raw)
        if email in seen:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Email {email} appears more than once in the request.",
            )
        seen.add(email)

    if not seen:
        return

    taken = [
        row[0]
        for row in db.query(models.User.email).filter(models.User.email.in_(seen)).all()
    ]
    if taken:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A user with email {sorted(taken)[0]} already exists.",
        )


def provision_user(
    db: Session,
    *,
    email: str,
    username: Optional[str] = None,
    phone_number: Optional[str] = None,
    role_id: Optional[int] = None,
    zone_id: Optional[str] = None,
    group_id: Optional[str] = None,
    sector_id: Optional[int] = None,
    password: Optional[str] = None,
) -> Tuple[models.User, Optional[str]]:
    """
    Create a user as part of a structure batch.

    Returns (user, temporary_password). When no password is supplied a
    temporary one is generated, the account is flagged
    `must_change_password`, and the plain value is handed back exactly once.
    """
    if role_id is not None:
        get_role_or_404(db, role_id)

    temporary_password: Optional[str] = None
    if not password:
        temporary_password = generate_temporary_password()
        password = temporary_password

    user = models.User(
        email=_normalise_email(email),
        username=username,
        phone_number=phone_number,
        role_id=role_id,
        zone_id=zone_id,
        group_id=group_id,
        sector_id=sector_id,
        hashed_password=get_password_hash(password),
        must_change_password=temporary_password is not None,
        is_active=True,
    )
    db.add(user)
    with conflict_guard(db, detail=f"A user with email {user.email} already exists."):
        db.flush()
    return user, temporary_password


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def authenticate_user(db: Session, *, email: str, password: str) -> Optional[models.User]:
    """
    Password login by email.

    Returns the user on success or None for unknown / inactive accounts and
    bad passwords. Legacy (bcrypt) hashes are upgraded to Argon2 on a
    successful login.
    """
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("login rejected", extra={"email": _normalise_email(email), "reason": "unknown_or_inactive"})
        return None

    if not verify_password(password, user.hashed_password):
        logger.info("login rejected", extra={"user_id": user.id, "reason": "bad_password"})
        return None

    if password_needs_rehash(user.hashed_password):
        user.hashed_password = get_password_hash(password)

    user.last_login_at = datetime.now(timezone.utc)
    db.add(user)
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """
    Create a JWT access token for the user.

    Returns (token_string, expires_in_seconds).
    """
    token = create_access_token(
        data=token_claims_for(user),
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return token, int(ACCESS_TOKEN_EXPIRE_MINUTES * 60)


def list_roles(db: Session) -> List[models.Role]:
    return db.query(models.Role).order_by(models.Role.id).all()


def change_password(
    db: Session,
    user: models.User,
    *,
    current_password: str,
    new_password: str,
) -> models.User:
    """
    Replace the user's password and clear `must_change_password`.

    This is how a provisioned user retires the temporary password handed
    out at creation.
    """
    if not verify_password(current_password, user.hashed_password):
        logger.info("password change rejected", extra={"user_id": user.id, "reason": "bad_password"})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect.",
        )
    if new_password == current_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must differ from the current one.",
        )

    user.hashed_password = get_password_hash(new_password)
    user.must_change_password = False
    db.add(user)
    logger.info("password changed", extra={"user_id": user.id})
    return user
