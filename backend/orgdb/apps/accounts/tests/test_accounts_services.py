from __future__ import annotations

import bcrypt
import pytest
from fastapi import HTTPException
from jose import jwt

from orgdb.apps.accounts import models as account_models
from orgdb.apps.accounts import services as account_services
from orgdb.apps.accounts.models import Capability
from orgdb.security import (
    JWT_ALGORITHM,
    SECRET_KEY,
    create_access_token,
    get_current_user,
    verify_password,
)


def test_default_roles_are_idempotent(db_session):
    first = account_services.ensure_default_roles(db_session)
    db_session.commit()
    second = account_services.ensure_default_roles(db_session)
    db_session.commit()

    assert {name: r.id for name, r in first.items()} == {name: r.id for name, r in second.items()}
    assert first["super_admin"].capabilities == set(Capability)
    assert Capability.CAN_CREATE_ZONE_ADMIN not in first["zone_admin"].capabilities
    assert db_session.query(account_models.RolePermission).count() == sum(
        len(caps) for caps in account_services.DEFAULT_ROLE_CAPABILITIES.values()
    )


def test_ensure_role_drops_revoked_capabilities(db_session):
    account_services.ensure_role(
        db_session,
        name="auditor",
        capabilities=[Capability.CAN_VIEW_WORK, Capability.CAN_VIEW_GROUP],
    )
    role = account_services.ensure_role(
        db_session, name="auditor", capabilities=[Capability.CAN_VIEW_WORK]
    )
    db_session.commit()
    assert role.capabilities == {Capability.CAN_VIEW_WORK}


def test_provision_user_generates_temporary_password(db_session):
    user, temporary = account_services.provision_user(db_session, email=" New@Example.com ")
    db_session.commit()

    assert user.email == "new@example.com"
    assert user.must_change_password is True
    assert temporary and len(temporary) >= 12
    assert verify_password(temporary, user.hashed_password)


def test_provision_user_with_unknown_role_is_404(db_session):
    with pytest.raises(HTTPException) as exc:
        account_services.provision_user(db_session, email="a@example.com", role_id=77)
    assert exc.value.status_code == 404


def test_ensure_emails_available(db_session):
    account_services.provision_user(db_session, email="taken@example.com", password="Secret123")
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        account_services.ensure_emails_available(db_session, ["a@example.com", "A@example.com"])
    assert exc.value.status_code == 409

    with pytest.raises(HTTPException) as exc:
        account_services.ensure_emails_available(db_session, ["TAKEN@example.com"])
    assert exc.value.status_code == 409

    account_services.ensure_emails_available(db_session, ["free@example.com"])


def test_authenticate_user(db_session):
    user, _ = account_services.provision_user(
        db_session, email="staff@example.com", password="Secret123"
    )
    db_session.commit()

    assert account_services.authenticate_user(
        db_session, email="STAFF@example.com", password="Secret123"
    ) is user
    assert user.last_login_at is not None
    assert account_services.authenticate_user(
        db_session, email="staff@example.com", password="wrong"
    ) is None

    user.is_active = False
    db_session.commit()
    assert account_services.authenticate_user(
        db_session, email="staff@example.com", password="Secret123"
    ) is None


def test_legacy_bcrypt_hash_is_upgraded_on_login(db_session):
    legacy = bcrypt.hashpw(b"OldSecret1", bcrypt.gensalt()).decode("utf-8")
    user = account_models.User(email="legacy@example.com", hashed_password=legacy)
    db_session.add(user)
    db_session.commit()

    assert account_services.authenticate_user(
        db_session, email="legacy@example.com", password="OldSecret1"
    ) is user
    assert user.hashed_password.startswith("$argon2")
    assert verify_password("OldSecret1", user.hashed_password)


def test_issued_token_resolves_to_user(db_session):
    user, _ = account_services.provision_user(db_session, email="t@example.com", password="Secret123")
    db_session.commit()

    token, expires_in = account_services.issue_access_token_for_user(user)
    assert expires_in > 0
    claims = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert claims["sub"] == user.id
    assert claims["typ"] == "access"
    assert claims["sector_id"] is None
    assert get_current_user(token=token, db=db_session) is user

    with pytest.raises(HTTPException) as exc:
        get_current_user(token="not-a-token", db=db_session)
    assert exc.value.status_code == 401


def test_user_capabilities_follow_role(db_session, roles):
    staff = account_models.User(
        email="s@example.com", hashed_password="x", role_id=roles["sector_staff"].id
    )
    nobody = account_models.User(email="n@example.com", hashed_password="x")
    root = account_models.User(email="r@example.com", hashed_password="x", is_superuser=True)
    db_session.add_all([staff, nobody, root])
    db_session.commit()
    db_session.refresh(staff)

    assert Capability.CAN_UPDATE_WORK in staff.capabilities
    assert Capability.CAN_CREATE_WORK not in staff.capabilities
    assert nobody.capabilities == set()
    assert root.capabilities == set(Capability)


def test_tokens_of_another_type_or_without_subject_are_rejected(db_session):
    user, _ = account_services.provision_user(db_session, email="r@example.com", password="Secret123")
    db_session.commit()

    for claims in ({"sub": user.id, "typ": "refresh"}, {"role_id": 1}):
        with pytest.raises(HTTPException) as exc:
            get_current_user(token=create_access_token(data=claims), db=db_session)
        assert exc.value.status_code == 401


def test_change_password_clears_flag(db_session):
    user, temporary = account_services.provision_user(db_session, email="c@example.com")
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        account_services.change_password(
            db_session, user, current_password="wrong", new_password="Another123"
        )
    assert exc.value.status_code == 400

    account_services.change_password(
        db_session, user, current_password=temporary, new_password="Another123"
    )
    db_session.commit()
    assert user.must_change_password is False
    assert verify_password("Another123", user.hashed_password)
    assert not verify_password(temporary, user.hashed_password)


def test_default_role_keeps_customised_capabilities(db_session):
    account_services.ensure_role(
        db_session, name="zone_admin", capabilities=[Capability.CAN_VIEW_ZONE_ADMIN]
    )
    role = account_services.get_default_role(db_session, "zone_admin")
    assert role.capabilities == {Capability.CAN_VIEW_ZONE_ADMIN}

    created = account_services.get_default_role(db_session, "group_admin")
    assert created.capabilities == set(account_services.DEFAULT_ROLE_CAPABILITIES["group_admin"])
