# backend/orgdb/apps/work/models.py

"""
Work module ORM models.

- Work: a planned unit of work over a date range with quantity / quality /
  cost targets. Created unassigned, then assigned to one or more sectors.
- WorkSectorAssignment: link between a work item and a sector it is
  assigned to.
- WeeklyTask: one week's slice of a work item for one sector, claimable by
  a single user.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Enumerations – stored as their lowercase API values
# ---------------------------------------------------------------------------


class WorkStatusEnum(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"


class WeeklyTaskStatusEnum(str, Enum):
    """Lifecycle of a weekly task."""

    UNASSIGNED = "unassigned"      # nobody has picked it yet
    PICKED = "picked"              # claimed by exactly one user
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Work
# ---------------------------------------------------------------------------


class Work(Base):
    __tablename__ = "works"
    __table_args__ = (
        Index("ix_works_status_created", "status", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)

    description = Column(Text, nullable=False)

    # Who handed the work out (defaults to the creating user)
    assigned_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Sector the work is planned for; actual assignment is via
    # WorkSectorAssignment.
    sector_id = Column(
        Integer,
        ForeignKey("sectors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    planned_start_date = Column(Date, nullable=True)
    planned_end_date = Column(Date, nullable=True)

    quality = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=True)
    time_required = Column(Integer, nullable=True)  # hours
    cost = Column(Numeric(14, 2, asdecimal=False), nullable=True)

    status = Column(
        SQLEnum(
            WorkStatusEnum,
            name="work_status_enum",
            native_enum=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=WorkStatusEnum.UNASSIGNED,
        index=True,
    )

    created_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    sector_assignments = relationship(
        "WorkSectorAssignment",
        back_populates="work",
        cascade="all, delete-orphan",
        order_by="WorkSectorAssignment.sector_id",
        lazy="selectin",
    )
    weekly_tasks = relationship(
        "WeeklyTask",
        back_populates="work",
        cascade="all, delete-orphan",
        order_by="WeeklyTask.week_number",
    )

    @property
    def sector_ids(self) -> list[int]:
        return [a.sector_id for a in self.sector_assignments]

    def __repr__(self) -> str:
        return f"<Work id={self.id} status={self.status}>"


class WorkSectorAssignment(Base):
    __tablename__ = "work_sector_assignments"
    __table_args__ = (
        UniqueConstraint("work_id", "sector_id", name="uq_work_sector_assignment"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_id = Column(
        String(36),
        ForeignKey("works.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sector_id = Column(
        Integer,
        ForeignKey("sectors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_by_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    work = relationship("Work", back_populates="sector_assignments")
    sector = relationship("Sector", back_populates="work_assignments")


# ---------------------------------------------------------------------------
# Weekly tasks
# ---------------------------------------------------------------------------


class WeeklyTask(Base):
    """
    A week's slice of a work item for one sector.

    `picked_by` stays NULL until a user claims the task. Claims and updates
    are compare-and-set writes (`picked_by IS NULL` / matching `version`),
    never read-modify-write.
    """

    __tablename__ = "weekly_tasks"
    __table_args__ = (
        UniqueConstraint("work_id", "sector_id", "week_number", name="uq_weekly_task_work_sector_week"),
        Index("ix_weekly_tasks_sector_status", "sector_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)

    description = Column(Text, nullable=False)
    status = Column(
        SQLEnum(
            WeeklyTaskStatusEnum,
            name="weekly_task_status_enum",
            native_enum=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=WeeklyTaskStatusEnum.UNASSIGNED,
    )

    work_id = Column(
        String(36),
        ForeignKey("works.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    week_number = Column(Integer, nullable=False)
    sector_id = Column(
        Integer,
        ForeignKey("sectors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    picked_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    picked_at = Column(DateTime(timezone=True), nullable=True)

    # Bumped on every write; clients may send it back for optimistic updates.
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    work = relationship("Work", back_populates="weekly_tasks")
    sector = relationship("Sector", back_populates="weekly_tasks")

    def __repr__(self) -> str:
        return f"<WeeklyTask id={self.id} work={self.work_id} week={self.week_number} status={self.status}>"
