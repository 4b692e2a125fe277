# backend/orgdb/apps/accounts/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from orgdb.database import Base
from orgdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class Capability(str, enum.Enum):
    """Named capabilities checked by the structure endpoints.

    Capabilities are granted to roles through RolePermission rows; a user
    holds the capabilities of their role. Superusers hold all of them.
    """

    CAN_CREATE_ZONE_ADMIN = "can_create_zone_admin"
    CAN_VIEW_ZONE_ADMIN = "can_view_zone_admin"
    CAN_DELETE_ZONE_ADMIN = "can_delete_zone_admin"

    CAN_CREATE_GROUP = "can_create_group"
    CAN_VIEW_GROUP = "can_view_group"
    CAN_VIEW_SECTOR = "can_view_sector"

    CAN_CREATE_WORK = "can_create_work"
    CAN_VIEW_WORK = "can_view_work"
    CAN_UPDATE_WORK = "can_update_work"

    CAN_CREATE_WEEKLY_TASK = "can_create_weeklyTask"
    CAN_VIEW_WEEKLY_TASK = "can_view_weeklyTask"
    CAN_UPDATE_WEEKLY_TASK = "can_update_weeklyTask"


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class Role(Base):
    """
    A named bundle of capabilities (e.g. zone admin, sector staff).

    Integer ids are kept so that batch provisioning payloads can reference
    roles by `role_id`.
    """

    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    users = relationship("User", back_populates="role")

    @property
    def capabilities(self) -> set[Capability]:
        return {p.capability for p in self.permissions}

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name}>"


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "capability", name="uq_role_permissions_role_capability"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(
        Integer,
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    capability = Column(
        Enum(
            Capability,
            name="capability_enum",
            native_enum=False,
            length=64,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    role = relationship("Role", back_populates="permissions")


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class User(Base):
    """
    Portal account.

    Users are mostly provisioned in bulk together with the zone or group they
    administer. Membership columns record where in the structure they sit;
    `sector_id` also restricts which weekly tasks they may pick.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_active", "role_id", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)

    username = Column(String(128), nullable=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone_number = Column(String(64), nullable=True)

    role_id = Column(
        Integer,
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Position in the structure
    zone_id = Column(
        String(36),
        ForeignKey("zones.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    group_id = Column(
        String(36),
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sector_id = Column(
        Integer,
        ForeignKey("sectors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Flags and status
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_superuser = Column(Boolean, nullable=False, default=False, index=True)
    must_change_password = Column(Boolean, nullable=False, default=False)

    hashed_password = Column(String(255), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    role = relationship("Role", back_populates="users", lazy="joined")

    @property
    def capabilities(self) -> set[Capability]:
        if self.is_superuser:
            return set(Capability)
        if self.role is None:
            return set()
        return self.role.capabilities

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
