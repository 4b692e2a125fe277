from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...database import commit_or_conflict, get_db, get_read_db
from ...permissions import require_capability
from ...security import get_current_active_user
from orgdb.apps.accounts.models import Capability, User
from orgdb.apps.accounts.schemas import ProvisionedUserRead

from . import schemas, services

router = APIRouter(
    prefix="/structure/group",
    tags=["groups"],
    dependencies=[Depends(get_current_active_user)],
)

# Groups are create / read only; there is no update or delete endpoint.


@router.post(
    "/create",
    response_model=schemas.GroupCreateResult,
    status_code=status.HTTP_201_CREATED,
)
def create_group(
    payload: schemas.GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_CREATE_GROUP)),
):
    group, (admin, admin_password), users = services.create_group(
        db, payload=payload, actor=current_user
    )
    commit_or_conflict(db, detail="Group name or user email already exists.")
    db.refresh(group)

    return schemas.GroupCreateResult(
        group=schemas.GroupRead.model_validate(group),
        admin=ProvisionedUserRead.model_validate(admin).model_copy(
            update={"temporary_password": admin_password}
        ),
        users=[
            ProvisionedUserRead.model_validate(user).model_copy(
                update={"temporary_password": password}
            )
            for user, password in users
        ],
    )


@router.get("/get", response_model=List[schemas.GroupRead])
def list_groups(
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_GROUP)),
):
    return services.list_groups(db)


@router.get("/get/{group_id}", response_model=schemas.GroupRead)
def get_group(
    group_id: str,
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_SECTOR)),
):
    return services.get_group_or_404(db, group_id)
