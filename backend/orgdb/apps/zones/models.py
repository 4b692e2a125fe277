# backend/orgdb/apps/zones/models.py

"""
Zone and sector ORM models.

- Zone: top-level administrative region with contact details and an admin
  account provisioned together with it.
- Sector: subdivision of a zone (optionally inside one of its groups) that
  work items and weekly tasks are assigned to.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Zone(Base):
    __tablename__ = "zones"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)

    zone_name = Column(String(255), nullable=False, unique=True, index=True)
    city_name = Column(String(255), nullable=True)
    email_address = Column(String(255), nullable=False)
    contact_phone_number = Column(String(64), nullable=True)

    # The zone admin account; public routes address a zone through it.
    admin_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_zones_admin_user_id"),
        nullable=True,
        unique=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    groups = relationship(
        "Group",
        back_populates="zone",
        cascade="all, delete-orphan",
        order_by="Group.group_name",
    )
    sectors = relationship(
        "Sector",
        back_populates="zone",
        cascade="all, delete-orphan",
        order_by="Sector.id",
    )
    # Members are detached (zone_id -> NULL), never deleted, with the zone.
    members = relationship("User", foreign_keys="User.zone_id")

    def __repr__(self) -> str:
        return f"<Zone id={self.id} name={self.zone_name}>"


class Sector(Base):
    __tablename__ = "sectors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    zone_id = Column(
        String(36),
        ForeignKey("zones.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    group_id = Column(
        String(36),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    zone = relationship("Zone", back_populates="sectors")
    group = relationship("Group", back_populates="sectors")
    members = relationship("User", foreign_keys="User.sector_id")

    work_assignments = relationship(
        "WorkSectorAssignment",
        back_populates="sector",
        cascade="all, delete-orphan",
    )
    weekly_tasks = relationship(
        "WeeklyTask",
        back_populates="sector",
        cascade="all, delete-orphan",
    )
    # Works targeting this sector keep existing with sector_id -> NULL.
    targeted_works = relationship("Work", foreign_keys="Work.sector_id")

    def __repr__(self) -> str:
        return f"<Sector id={self.id} name={self.name} zone={self.zone_id}>"
