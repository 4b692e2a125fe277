from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from orgdb.database import Base
from orgdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Group(Base):
    """
    Sub-unit of a zone. Owns its own sectors and an admin account.
    """

    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("zone_id", "group_name", name="uq_groups_zone_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    zone_id = Column(String(36), ForeignKey("zones.id", ondelete="CASCADE"), nullable=False, index=True)

    group_name = Column(String(255), nullable=False)
    email_address = Column(String(255), nullable=False)
    contact_phone_number = Column(String(64), nullable=True)

    admin_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_groups_admin_user_id"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    zone = relationship("Zone", back_populates="groups")
    sectors = relationship(
        "Sector",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Sector.id",
    )
    members = relationship("User", foreign_keys="User.group_id")

    def __repr__(self) -> str:
        return f"<Group id={self.id} name={self.group_name} zone={self.zone_id}>"
