# backend/orgdb/apps/zones/services.py

"""
Zone and sector services.

Zone creation is a batch: the zone, its admin account, one sector per
distinct `sector_name` and one user per entry are created in the caller's
transaction. Any error raises before the router commits, so nothing of a
failed batch is kept.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from orgdb.apps.accounts import services as account_services
from orgdb.apps.accounts.models import User
from orgdb.apps.accounts.schemas import UserProvision
from orgdb.apps.audit import services as audit_services
from orgdb.database import conflict_guard

from . import models, schemas

logger = logging.getLogger(__name__)

ProvisionedUser = Tuple[User, Optional[str]]


# ---------------------------------------------------------------------------
# Sectors
# ---------------------------------------------------------------------------


def get_sector_or_404(db: Session, sector_id: int) -> models.Sector:
    sector = db.get(models.Sector, sector_id)
    if sector is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sector {sector_id} not found.",
        )
    return sector


def get_or_create_sector(
    db: Session,
    *,
    name: str,
    zone_id: str,
    group_id: Optional[str] = None,
) -> models.Sector:
    """Sectors are unique by name within a zone (or within a group)."""
    query = db.query(models.Sector).filter(
        models.Sector.zone_id == zone_id,
        models.Sector.name == name,
    )
    if group_id is None:
        query = query.filter(models.Sector.group_id.is_(None))
    else:
        query = query.filter(models.Sector.group_id == group_id)

    sector = query.first()
    if sector is None:
        sector = models.Sector(name=name, zone_id=zone_id, group_id=group_id)
        db.add(sector)
        with conflict_guard(db, detail=f"Sector {name} already exists."):
            db.flush()
    return sector


def provision_unit_users(
    db: Session,
    *,
    users: Sequence[UserProvision],
    zone_id: str,
    group_id: Optional[str] = None,
) -> List[ProvisionedUser]:
    """
    Create the sector users of a zone / group batch, creating each named
    sector on first use.
    Entries without a role_id become `sector_staff`.
    """
    created: List[ProvisionedUser] = []
    staff_role_id: Optional[int] = None
    for entry in users:
        role_id = entry.role_id
        if role_id is None:
            if staff_role_id is None:
                staff_role_id = account_services.get_default_role(db, "sector_staff").id
            role_id = staff_role_id
        sector = get_or_create_sector(
            db,
            name=entry.sector_name,
            zone_id=zone_id,
            group_id=group_id,
        )
        created.append(
            account_services.provision_user(
                db,
                email=entry.email,
                username=entry.username,
                phone_number=entry.phone_number,
                role_id=role_id,
                zone_id=zone_id,
                group_id=group_id,
                sector_id=sector.id,
                password=entry.password,
            )
        )
    return created


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------


def list_zones(db: Session) -> List[models.Zone]:
    return db.query(models.Zone).order_by(models.Zone.zone_name).all()


def get_zone_or_404(db: Session, zone_id: str) -> models.Zone:
    zone = db.get(models.Zone, zone_id)
    if zone is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zone not found")
    return zone


def get_zone_by_admin_or_404(db: Session, zone_user_id: str) -> models.Zone:
    zone = (
        db.query(models.Zone)
        .filter(models.Zone.admin_user_id == zone_user_id)
        .first()
    )
    if zone is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Zone not found")
    return zone


def create_zone(
    db: Session,
    *,
    payload: schemas.ZoneCreate,
    actor: User,
) -> Tuple[models.Zone, ProvisionedUser, List[ProvisionedUser]]:
    """
    Create a zone with its admin account and sector users.

    Returns (zone, (admin, admin_temp_password), [(user, temp_password), ...]).
    """
    detail = payload.zone_detail

    existing = (
        db.query(models.Zone.id)
        .filter(models.Zone.zone_name == detail.zone_name)
        .first()
    )
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Zone {detail.zone_name} already exists.",
        )

    account_services.ensure_emails_available(
        db, [detail.email_address] + [u.email for u in payload.users]
    )

    zone = models.Zone(
        zone_name=detail.zone_name,
        city_name=detail.city_name,
        email_address=str(detail.email_address).lower(),
        contact_phone_number=detail.contact_phone_number,
    )
    db.add(zone)
    with conflict_guard(db, detail=f"Zone {detail.zone_name} already exists."):
        db.flush()

    admin = account_services.provision_user(
        db,
        email=detail.email_address,
        username=detail.zone_name,
        phone_number=detail.contact_phone_number,
        role_id=detail.role_id or account_services.get_default_role(db, "zone_admin").id,
        zone_id=zone.id,
        password=detail.password,
    )
    zone.admin_user_id = admin[0].id

    users = provision_unit_users(db, users=payload.users, zone_id=zone.id)
    with conflict_guard(db, detail="Zone name or user email already exists."):
        db.flush()

    logger.info(
        "zone provisioned",
        extra={"zone_id": zone.id, "admin_user_id": zone.admin_user_id, "users": len(users)},
    )
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="zone",
        entity_id=zone.id,
        action="create",
        after={
            "zone_name": zone.zone_name,
            "admin_user_id": zone.admin_user_id,
            "user_ids": [u.id for u, _ in users],
        },
    )
    return zone, admin, users


def delete_zone(db: Session, *, zone_user_id: str, actor: User) -> None:
    """
    Delete the zone addressed by its admin user id.

    Groups, sectors and everything hanging off the sectors go with it;
    member accounts are kept but detached, and the admin is deactivated.
    """
    zone = get_zone_by_admin_or_404(db, zone_user_id)
    zone_id = zone.id
    before = {
        "zone_name": zone.zone_name,
        "group_ids": [g.id for g in zone.groups],
        "sector_ids": [s.id for s in zone.sectors],
    }

    sector_ids = [s.id for s in zone.sectors]
    group_ids = [g.id for g in zone.groups]
    member_filter = [User.zone_id == zone.id]
    if sector_ids:
        member_filter.append(User.sector_id.in_(sector_ids))
    if group_ids:
        member_filter.append(User.group_id.in_(group_ids))

    for member in db.query(User).filter(or_(*member_filter)).all():
        member.zone_id = None
        member.group_id = None
        member.sector_id = None

    admin = db.get(User, zone.admin_user_id) if zone.admin_user_id else None
    if admin is not None:
        admin.is_active = False

    zone.admin_user_id = None
    db.flush()

    db.delete(zone)
    db.flush()

    logger.info("zone deleted", extra={"zone_id": zone_id, "zone_user_id": zone_user_id})
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="zone",
        entity_id=zone_id,
        action="delete",
        before=before,
    )
