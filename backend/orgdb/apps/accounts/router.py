# backend/orgdb/apps/accounts/router.py

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orgdb.database import get_db, get_read_db
from orgdb.security import get_current_active_user
from . import models, schemas, services

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=schemas.Token,
    summary="Login with email and password",
)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
):
    user = services.authenticate_user(
        db,
        email=payload.email,
        password=payload.password,
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password.",
        )
    db.commit()
    db.refresh(user)

    token, expires_in = services.issue_access_token_for_user(user)
    return schemas.Token(
        access_token=token,
        expires_in=expires_in,
        user=schemas.UserRead.model_validate(user),
    )


@router.get(
    "/me",
    response_model=schemas.CurrentUserRead,
    summary="Get current logged-in user and their capabilities",
)
def read_current_user(
    current_user: models.User = Depends(get_current_active_user),
):
    data = schemas.UserRead.model_validate(current_user).model_dump()
    data["capabilities"] = sorted(current_user.capabilities, key=lambda c: c.value)
    return schemas.CurrentUserRead(**data)


@router.get(
    "/roles",
    response_model=List[schemas.RoleRead],
    summary="List roles that provisioning payloads can reference by role_id",
)
def list_roles(
    db: Session = Depends(get_read_db),
    _: models.User = Depends(get_current_active_user),
):
    return [
        schemas.RoleRead(
            id=role.id,
            name=role.name,
            description=role.description,
            capabilities=sorted(role.capabilities, key=lambda c: c.value),
        )
        for role in services.list_roles(db)
    ]


@router.post(
    "/change-password",
    response_model=schemas.UserRead,
    summary="Replace the caller's password (clears must_change_password)",
)
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    user = services.change_password(
        db,
        current_user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    db.commit()
    db.refresh(user)
    return user
