from __future__ import annotations

import logging
from typing import List, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from orgdb.apps.accounts import services as account_services
from orgdb.apps.accounts.models import User
from orgdb.apps.audit import services as audit_services
from orgdb.database import conflict_guard
from orgdb.apps.zones import services as zone_services
from orgdb.apps.zones.services import ProvisionedUser

from . import models, schemas

logger = logging.getLogger(__name__)


def list_groups(db: Session) -> List[models.Group]:
    return (
        db.query(models.Group)
        .order_by(models.Group.zone_id, models.Group.group_name)
        .all()
    )


def get_group_or_404(db: Session, group_id: str) -> models.Group:
    group = db.get(models.Group, group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


def create_group(
    db: Session,
    *,
    payload: schemas.GroupCreate,
    actor: User,
) -> Tuple[models.Group, ProvisionedUser, List[ProvisionedUser]]:
    """
    Create a group under an existing zone, with its admin account and
    sector users. Same all-or-nothing batch rules as zone creation.
    """
    detail = payload.group_detail

    zone_id = detail.zone_id or actor.zone_id
    if not zone_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="zone_id is required when the caller has no zone.",
        )
    zone = zone_services.get_zone_or_404(db, zone_id)

    existing = (
        db.query(models.Group.id)
        .filter(
            models.Group.zone_id == zone.id,
            models.Group.group_name == detail.group_name,
        )
        .first()
    )
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Group {detail.group_name} already exists in this zone.",
        )

    account_services.ensure_emails_available(
        db, [detail.email_address] + [u.email for u in payload.users]
    )

    group = models.Group(
        zone_id=zone.id,
        group_name=detail.group_name,
        email_address=str(detail.email_address).lower(),
        contact_phone_number=detail.contact_phone_number,
    )
    db.add(group)
    with conflict_guard(db, detail=f"Group {detail.group_name} already exists in this zone."):
        db.flush()

    admin = account_services.provision_user(
        db,
        email=detail.email_address,
        username=detail.group_name,
        phone_number=detail.contact_phone_number,
        role_id=detail.role_id or account_services.get_default_role(db, "group_admin").id,
        zone_id=zone.id,
        group_id=group.id,
        password=detail.password,
    )
    group.admin_user_id = admin[0].id

    users = zone_services.provision_unit_users(
        db,
        users=payload.users,
        zone_id=zone.id,
        group_id=group.id,
    )
    with conflict_guard(db, detail="Group name or user email already exists."):
        db.flush()

    logger.info(
        "group provisioned",
        extra={"group_id": group.id, "zone_id": zone.id, "users": len(users)},
    )
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="group",
        entity_id=group.id,
        action="create",
        after={
            "group_name": group.group_name,
            "zone_id": zone.id,
            "admin_user_id": group.admin_user_id,
        },
    )
    return group, admin, users
