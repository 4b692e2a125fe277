# backend/orgdb/apps/zones/router.py
"""
Zones API.

Zones are addressed by their admin user's id (`zone_user_id`), the handle
clients receive when the zone is provisioned.
"""

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
    prefix="/structure/zone",
    tags=["zones"],
    dependencies=[Depends(get_current_active_user)],
)


def _provisioned(user: User, temporary_password) -> ProvisionedUserRead:
    return ProvisionedUserRead.model_validate(user).model_copy(
        update={"temporary_password": temporary_password}
    )


@router.post(
    "/create",
    response_model=schemas.ZoneCreateResult,
    status_code=status.HTTP_201_CREATED,
)
def create_zone(
    payload: schemas.ZoneCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_CREATE_ZONE_ADMIN)),
):
    """
    Create a zone, its admin account and its sector users in one go.

    All or nothing: a failing entry rolls back the whole batch.
    """
    zone, (admin, admin_password), users = services.create_zone(
        db, payload=payload, actor=current_user
    )
    commit_or_conflict(db, detail="Zone name or user email already exists.")
    db.refresh(zone)

    return schemas.ZoneCreateResult(
        zone=schemas.ZoneRead.model_validate(zone),
        admin=_provisioned(admin, admin_password),
        users=[_provisioned(user, password) for user, password in users],
    )


@router.get("/get", response_model=List[schemas.ZoneRead])
def list_zones(
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_ZONE_ADMIN)),
):
    return services.list_zones(db)


@router.get("/get/{zone_user_id}", response_model=schemas.ZoneRead)
def get_zone(
    zone_user_id: str,
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_ZONE_ADMIN)),
):
    return services.get_zone_by_admin_or_404(db, zone_user_id)


@router.delete("/{zone_user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_zone(
    zone_user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_DELETE_ZONE_ADMIN)),
):
    services.delete_zone(db, zone_user_id=zone_user_id, actor=current_user)
    commit_or_conflict(db)
    return
