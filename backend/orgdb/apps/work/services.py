# backend/orgdb/apps/work/services.py

"""
Work and weekly task services.

All functions work inside the caller's transaction: they add / flush but
never commit. Routers commit once per request.

Claiming (`pick_weekly_task`) and updating (`update_weekly_task`) a weekly
task are single conditional UPDATE statements whose affected-row count
decides the outcome, so two concurrent requests can never both win.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from fastapi import HTTPException, status
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from orgdb.apps.accounts import services as account_services
from orgdb.apps.accounts.models import User
from orgdb.apps.audit import services as audit_services
from orgdb.apps.zones import services as zone_services
from orgdb.database import conflict_guard

from . import models, schemas
from .models import WeeklyTaskStatusEnum, WorkStatusEnum

logger = logging.getLogger(__name__)


# Allowed status moves through PUT. Leaving UNASSIGNED only happens via pick.
WEEKLY_TASK_TRANSITIONS: Dict[WeeklyTaskStatusEnum, Set[WeeklyTaskStatusEnum]] = {
    WeeklyTaskStatusEnum.UNASSIGNED: set(),
    WeeklyTaskStatusEnum.PICKED: {
        WeeklyTaskStatusEnum.IN_PROGRESS,
        WeeklyTaskStatusEnum.COMPLETED,
    },
    WeeklyTaskStatusEnum.IN_PROGRESS: {WeeklyTaskStatusEnum.COMPLETED},
    WeeklyTaskStatusEnum.COMPLETED: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _task_snapshot(task: models.WeeklyTask) -> dict:
    return {
        "status": WeeklyTaskStatusEnum(task.status).value,
        "week_number": task.week_number,
        "description": task.description,
        "picked_by": task.picked_by,
        "version": task.version,
    }


# ---------------------------------------------------------------------------
# Work
# ---------------------------------------------------------------------------


def get_work_or_404(db: Session, work_id: str) -> models.Work:
    work = db.get(models.Work, work_id)
    if work is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Work not found",
        )
    return work


def create_work(
    db: Session,
    *,
    payload: schemas.WorkCreate,
    actor: User,
) -> models.Work:
    if payload.sector_id is not None:
        zone_services.get_sector_or_404(db, payload.sector_id)
    if payload.assigned_by is not None:
        account_services.get_user_or_404(db, payload.assigned_by)

    work = models.Work(
        description=payload.description,
        assigned_by=payload.assigned_by or actor.id,
        sector_id=payload.sector_id,
        planned_start_date=payload.planned_start_date,
        planned_end_date=payload.planned_end_date,
        quality=payload.quality,
        quantity=payload.quantity,
        time_required=payload.time_required,
        cost=payload.cost,
        status=WorkStatusEnum.UNASSIGNED,
        created_by_user_id=actor.id,
    )
    db.add(work)
    with conflict_guard(db):
        db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="work",
        entity_id=work.id,
        action="create",
        after={"description": work.description, "sector_id": work.sector_id},
    )
    return work


def list_works(
    db: Session,
    *,
    skip: int = 0,
    limit: int = 100,
    status_filter: Optional[WorkStatusEnum] = None,
) -> List[models.Work]:
    query = db.query(models.Work)
    if status_filter is not None:
        query = query.filter(models.Work.status == status_filter)
    return (
        query.order_by(models.Work.created_at.desc(), models.Work.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def list_works_for_user(db: Session, *, actor: User) -> List[models.Work]:
    """
    Works relevant to the caller: ones they handed out, ones assigned to
    their sector, and ones holding a weekly task they picked.
    """
    conditions = [
        models.Work.assigned_by == actor.id,
        models.Work.id.in_(
            select(models.WeeklyTask.work_id).where(models.WeeklyTask.picked_by == actor.id)
        ),
    ]
    if actor.sector_id is not None:
        conditions.append(
            models.Work.id.in_(
                select(models.WorkSectorAssignment.work_id).where(
                    models.WorkSectorAssignment.sector_id == actor.sector_id
                )
            )
        )
    return (
        db.query(models.Work)
        .filter(or_(*conditions))
        .order_by(models.Work.created_at.desc(), models.Work.id.desc())
        .all()
    )


def delete_work(db: Session, *, work_id: str, actor: User) -> None:
    work = get_work_or_404(db, work_id)
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="work",
        entity_id=work.id,
        action="delete",
        before={"description": work.description, "sector_ids": work.sector_ids},
    )
    db.delete(work)
    with conflict_guard(db):
        db.flush()


def assign_work_to_sectors(
    db: Session,
    *,
    work_id: str,
    sector_ids: List[int],
    actor: User,
) -> models.Work:
    """
    Attach a work item to sectors. Re-assigning an already assigned sector
    is a no-op; the work moves to ASSIGNED.
    """
    work = get_work_or_404(db, work_id)
    for sector_id in sector_ids:
        zone_services.get_sector_or_404(db, sector_id)

    before = work.sector_ids
    existing = set(before)
    for sector_id in sector_ids:
        if sector_id in existing:
            continue
        work.sector_assignments.append(
            models.WorkSectorAssignment(
                sector_id=sector_id,
                assigned_by_user_id=actor.id,
            )
        )
        existing.add(sector_id)

    work.status = WorkStatusEnum.ASSIGNED
    db.add(work)
    with conflict_guard(db, detail="Sector is already assigned to this work."):
        db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="work",
        entity_id=work.id,
        action="assign",
        before={"sector_ids": before},
        after={"sector_ids": work.sector_ids},
    )
    return work


# ---------------------------------------------------------------------------
# Weekly tasks
# ---------------------------------------------------------------------------


def get_weekly_task_or_404(db: Session, weekly_task_id: str) -> models.WeeklyTask:
    task = db.get(models.WeeklyTask, weekly_task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Weekly task not found",
        )
    return task


def list_weekly_tasks_for_work(db: Session, work_id: str) -> List[models.WeeklyTask]:
    work = get_work_or_404(db, work_id)
    return (
        db.query(models.WeeklyTask)
        .filter(models.WeeklyTask.work_id == work.id)
        .order_by(models.WeeklyTask.week_number, models.WeeklyTask.sector_id)
        .all()
    )


def create_weekly_tasks(
    db: Session,
    *,
    payload: schemas.WeeklyTaskCreate,
    actor: User,
) -> List[models.WeeklyTask]:
    """
    Create one weekly task per sector for the given work and week.

    Every sector must exist and already be assigned to the work. The batch
    is all-or-nothing: any failure raises before anything is flushed.
    """
    work = get_work_or_404(db, payload.work_id)

    if len(set(payload.sector_ids)) != len(payload.sector_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sector_ids must not contain duplicates.",
        )

    assigned = set(work.sector_ids)
    for sector_id in payload.sector_ids:
        zone_services.get_sector_or_404(db, sector_id)
        if sector_id not in assigned:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Sector {sector_id} is not assigned to this work.",
            )

    clash = (
        db.query(models.WeeklyTask.sector_id)
        .filter(
            models.WeeklyTask.work_id == work.id,
            models.WeeklyTask.week_number == payload.week_number,
            models.WeeklyTask.sector_id.in_(payload.sector_ids),
        )
        .first()
    )
    if clash is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"A weekly task for sector {clash[0]} in week "
                f"{payload.week_number} already exists."
            ),
        )

    tasks: List[models.WeeklyTask] = []
    for sector_id in payload.sector_ids:
        task = models.WeeklyTask(
            description=payload.description or work.description,
            status=WeeklyTaskStatusEnum.UNASSIGNED,
            work_id=work.id,
            week_number=payload.week_number,
            sector_id=sector_id,
            picked_by=None,
        )
        db.add(task)
        tasks.append(task)
    with conflict_guard(
        db,
        detail=f"A weekly task for one of these sectors in week {payload.week_number} already exists.",
    ):
        db.flush()

    for task in tasks:
        audit_services.log_event(
            db,
            actor_user_id=actor.id,
            entity_type="weekly_task",
            entity_id=task.id,
            action="create",
            after=_task_snapshot(task),
        )
    return tasks


def pick_weekly_task(
    db: Session,
    *,
    weekly_task_id: str,
    actor: User,
) -> models.WeeklyTask:
    """
    Claim a weekly task for the acting user.

    A single `UPDATE ... WHERE id = :id AND picked_by IS NULL`; exactly one
    of any number of concurrent callers sees an affected row. The others get
    409 (or 404 when the task does not exist at all).
    """
    task = get_weekly_task_or_404(db, weekly_task_id)

    if (
        not actor.is_superuser
        and actor.sector_id is not None
        and actor.sector_id != task.sector_id
    ):
        logger.warning(
            "weekly task pick rejected",
            extra={"weekly_task_id": task.id, "user_id": actor.id, "reason": "sector"},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Weekly task belongs to a different sector.",
        )

    now = _utcnow()
    result = db.execute(
        update(models.WeeklyTask)
        .where(
            models.WeeklyTask.id == weekly_task_id,
            models.WeeklyTask.picked_by.is_(None),
        )
        .values(
            picked_by=actor.id,
            picked_at=now,
            status=WeeklyTaskStatusEnum.PICKED,
            version=models.WeeklyTask.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        still_there = db.execute(
            select(models.WeeklyTask.id).where(models.WeeklyTask.id == weekly_task_id)
        ).first()
        if still_there is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Weekly task not found",
            )
        logger.warning(
            "weekly task pick rejected",
            extra={"weekly_task_id": weekly_task_id, "user_id": actor.id, "reason": "already_picked"},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Weekly task has already been picked.",
        )

    db.refresh(task)
    logger.info(
        "weekly task picked",
        extra={"weekly_task_id": task.id, "user_id": actor.id},
    )
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="weekly_task",
        entity_id=task.id,
        action="pick",
        after=_task_snapshot(task),
    )
    return task


def update_weekly_task(
    db: Session,
    *,
    weekly_task_id: str,
    payload: schemas.WeeklyTaskUpdate,
    actor: User,
) -> models.WeeklyTask:
    """
    Partial update guarded by the status transition table and a
    compare-and-set on `version`.
    """
    task = get_weekly_task_or_404(db, weekly_task_id)
    before = _task_snapshot(task)

    data = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    expected_version = data.pop("version", None) or task.version

    if expected_version != task.version:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Weekly task was modified by another request.",
        )

    new_status = data.get("status")
    if new_status is not None:
        current = WeeklyTaskStatusEnum(task.status)
        new_status = WeeklyTaskStatusEnum(new_status)
        if new_status == current:
            data.pop("status")
        elif new_status not in WEEKLY_TASK_TRANSITIONS[current]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot move weekly task from '{current.value}' to '{new_status.value}'.",
            )

    new_week = data.get("week_number")
    if new_week is not None and new_week != task.week_number:
        clash = (
            db.query(models.WeeklyTask.id)
            .filter(
                models.WeeklyTask.work_id == task.work_id,
                models.WeeklyTask.sector_id == task.sector_id,
                models.WeeklyTask.week_number == new_week,
            )
            .first()
        )
        if clash is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A weekly task for this sector in week {new_week} already exists.",
            )

    if not data:
        return task

    with conflict_guard(db, detail="A weekly task for this sector in that week already exists."):
        result = db.execute(
            update(models.WeeklyTask)
            .where(
                models.WeeklyTask.id == weekly_task_id,
                models.WeeklyTask.version == expected_version,
            )
            .values(
                **data,
                version=models.WeeklyTask.version + 1,
                updated_at=_utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
    if result.rowcount != 1:
        logger.warning(
            "weekly task update conflict",
            extra={"weekly_task_id": weekly_task_id, "expected_version": expected_version},
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Weekly task was modified by another request.",
        )

    db.refresh(task)
    audit_services.log_event(
        db,
        actor_user_id=actor.id,
        entity_type="weekly_task",
        entity_id=task.id,
        action="update",
        before=before,
        after=_task_snapshot(task),
    )
    return task
