from __future__ import annotations

import pytest
from fastapi import HTTPException

from orgdb.apps.accounts import models as account_models
from orgdb.apps.groups import schemas as group_schemas
from orgdb.apps.groups import services as group_services
from orgdb.apps.zones import models as zone_models


def _create_zone(db, name: str = "Metu") -> zone_models.Zone:
    zone = zone_models.Zone(zone_name=name, email_address=f"{name.lower()}@example.com")
    db.add(zone)
    db.commit()
    db.refresh(zone)
    return zone


def _payload(zone_id=None, group_name: str = "Yayo", admin_email: str = "yayo@example.com"):
    detail = {"group_name": group_name, "email_address": admin_email}
    if zone_id is not None:
        detail["zone_id"] = zone_id
    return group_schemas.GroupCreate.model_validate(
        {
            "users": [
                {"username": "lensa", "email": "lensa@example.com", "sector_name": "Finance"},
            ],
            "groupDetail": detail,
        }
    )


def test_create_group_under_zone(db_session, superuser):
    zone = _create_zone(db_session)

    group, (admin, admin_password), users = group_services.create_group(
        db_session, payload=_payload(zone.id), actor=superuser
    )
    db_session.commit()

    assert group.zone_id == zone.id
    assert group.admin_user_id == admin.id
    assert admin.group_id == group.id and admin.zone_id == zone.id
    assert admin_password

    (user, _), = users
    sector = db_session.get(zone_models.Sector, user.sector_id)
    assert sector.name == "Finance"
    assert sector.group_id == group.id
    assert sector.zone_id == zone.id
    assert [s.id for s in group.sectors] == [sector.id]


def test_group_defaults_to_callers_zone(db_session):
    zone = _create_zone(db_session)
    zone_admin = account_models.User(
        email="zoneadmin@example.com", hashed_password="test-hash", zone_id=zone.id
    )
    db_session.add(zone_admin)
    db_session.commit()

    group, _, _ = group_services.create_group(db_session, payload=_payload(), actor=zone_admin)
    assert group.zone_id == zone.id


def test_group_without_zone_is_rejected(db_session, superuser):
    with pytest.raises(HTTPException) as exc:
        group_services.create_group(db_session, payload=_payload(), actor=superuser)
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        group_services.create_group(db_session, payload=_payload("missing"), actor=superuser)
    assert exc.value.status_code == 404


def test_duplicate_group_name_in_zone_is_409(db_session, superuser):
    zone = _create_zone(db_session)
    group_services.create_group(db_session, payload=_payload(zone.id), actor=superuser)
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        group_services.create_group(
            db_session,
            payload=_payload(zone.id, admin_email="other@example.com"),
            actor=superuser,
        )
    assert exc.value.status_code == 409


def test_get_group_or_404(db_session):
    with pytest.raises(HTTPException) as exc:
        group_services.get_group_or_404(db_session, "missing")
    assert exc.value.status_code == 404


def test_group_admin_without_role_gets_group_admin(db_session, superuser, roles):
    zone = _create_zone(db_session)
    group, (admin, _), users = group_services.create_group(
        db_session, payload=_payload(zone.id), actor=superuser
    )
    db_session.commit()
    db_session.refresh(admin)

    assert admin.role_id == roles["group_admin"].id
    assert account_models.Capability.CAN_VIEW_GROUP in admin.capabilities
    (user, _), = users
    assert user.role_id == roles["sector_staff"].id
