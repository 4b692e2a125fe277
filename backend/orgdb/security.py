# backend/orgdb/security.py

"""
Authentication for the structure portal.

Passwords are stored as Argon2id hashes. Accounts migrated from the old
portal may still carry bcrypt hashes; those verify once and are re-hashed
by the login service.

Access tokens are HS256 JWTs whose subject is the user id. They also carry
the user's placement in the hierarchy (zone / group / sector) so clients can
render the right views without an extra round-trip; the server never trusts
those claims and always reloads the user.

Capability checks live in `orgdb.permissions`.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from orgdb.apps.accounts import models as account_models


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
TOKEN_TYPE = "access"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# --- passwords --------------------------------------------------------------

_hasher = PasswordHasher(
    time_cost=_int_env("ARGON2_TIME_COST", 3),
    memory_cost=_int_env("ARGON2_MEMORY_COST", 65536),
    parallelism=_int_env("ARGON2_PARALLELISM", 2),
    hash_len=_int_env("ARGON2_HASH_LEN", 32),
    salt_len=_int_env("ARGON2_SALT_LEN", 16),
)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _hash_scheme(hashed_password: Optional[str]) -> Optional[str]:
    if not isinstance(hashed_password, str):
        return None
    if hashed_password.startswith("$argon2"):
        return "argon2"
    if hashed_password.startswith(_BCRYPT_PREFIXES):
        return "bcrypt"
    return None


def get_password_hash(password: str) -> str:
    return _hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """True when `plain_password` matches an Argon2 or legacy bcrypt hash."""
    if not plain_password:
        return False

    scheme = _hash_scheme(hashed_password)
    if scheme == "argon2":
        try:
            return _hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False
    if scheme == "bcrypt":
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False
    return False


def password_needs_rehash(hashed_password: str) -> bool:
    if _hash_scheme(hashed_password) != "argon2":
        return True
    return _hasher.check_needs_rehash(hashed_password)


# --- tokens -----------------------------------------------------------------


def token_claims_for(user: account_models.User) -> Dict[str, Any]:
    return {
        "sub": str(user.id),
        "role_id": user.role_id,
        "zone_id": user.zone_id,
        "group_id": user.group_id,
        "sector_id": user.sector_id,
        "is_superuser": bool(user.is_superuser),
    }


def create_access_token(*, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"typ": TOKEN_TYPE, **data, "iat": now, "exp": now + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> str:
    """Return the user id carried by a valid access token, else raise 401."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized()

    subject = claims.get("sub")
    if not subject or claims.get("typ", TOKEN_TYPE) != TOKEN_TYPE:
        raise _unauthorized()
    return str(subject).strip()


# --- dependencies -----------------------------------------------------------


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    user = db.get(account_models.User, decode_access_token(token))
    if user is None:
        raise _unauthorized()
    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    # Admins of a deleted zone are deactivated and locked out here.
    if not current_user.is_active:
        raise _unauthorized("Inactive user account")
    return current_user
