# backend/orgdb/apps/work/router.py
"""
Work items and weekly tasks API.

- Work: creation, listing, lookup, delete and sector assignment.
- Weekly tasks: per-week, per-sector slices of a work item, claimed by a
  single user via `pickWork`.

Every endpoint is gated by a capability (see `orgdb.permissions`).
"""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...database import commit_or_conflict, get_db, get_read_db
from ...permissions import require_capability
from ...security import get_current_active_user
from orgdb.apps.accounts.models import Capability, User

from . import models, schemas, services
from .models import WorkStatusEnum

# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

router = APIRouter(
    prefix="/structure/work",
    tags=["work"],
    dependencies=[Depends(get_current_active_user)],
)


# ---------------------------------------------------------------------------
# Work
# ---------------------------------------------------------------------------


@router.post(
    "/create",
    response_model=schemas.WorkRead,
    status_code=status.HTTP_201_CREATED,
)
def create_work(
    payload: schemas.WorkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_CREATE_WORK)),
):
    """
    Create a new work item. It starts UNASSIGNED until `assign/{work_id}`.
    """
    work = services.create_work(db, payload=payload, actor=current_user)
    commit_or_conflict(db)
    db.refresh(work)
    return work


@router.get("/get", response_model=List[schemas.WorkRead])
def list_works(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[WorkStatusEnum] = Query(None, alias="status"),
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_ZONE_ADMIN)),
):
    return services.list_works(db, skip=skip, limit=limit, status_filter=status_filter)


@router.get("/getByUserId", response_model=List[schemas.WorkRead])
def list_works_for_current_user(
    db: Session = Depends(get_read_db),
    current_user: User = Depends(require_capability(Capability.CAN_VIEW_WORK)),
):
    return services.list_works_for_user(db, actor=current_user)


@router.get("/get/{work_id}", response_model=schemas.WorkRead)
def get_work(
    work_id: str,
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_WORK)),
):
    return services.get_work_or_404(db, work_id)


@router.delete("/{work_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_work(
    work_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_DELETE_ZONE_ADMIN)),
):
    """
    Hard delete a work item together with its assignments and weekly tasks.
    """
    services.delete_work(db, work_id=work_id, actor=current_user)
    commit_or_conflict(db)
    return


@router.post("/assign/{work_id}", response_model=schemas.WorkRead)
def assign_work(
    work_id: str,
    payload: schemas.WorkAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_UPDATE_WORK)),
):
    work = services.assign_work_to_sectors(
        db,
        work_id=work_id,
        sector_ids=payload.sector_ids,
        actor=current_user,
    )
    commit_or_conflict(db, detail="Work is already assigned to that sector.")
    db.refresh(work)
    return work


@router.post("/pickWork", response_model=schemas.WeeklyTaskRead)
def pick_work(
    payload: schemas.PickWorkRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_UPDATE_WORK)),
):
    """
    Claim a weekly task for the caller. Only the first claim succeeds;
    later ones get 409.
    """
    task = services.pick_weekly_task(
        db,
        weekly_task_id=payload.weekly_task_id,
        actor=current_user,
    )
    commit_or_conflict(db)
    db.refresh(task)
    return task


# ---------------------------------------------------------------------------
# Weekly tasks
# ---------------------------------------------------------------------------


@router.post(
    "/weeklyTask/",
    response_model=List[schemas.WeeklyTaskRead],
    status_code=status.HTTP_201_CREATED,
)
def create_weekly_tasks(
    payload: schemas.WeeklyTaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_CREATE_WEEKLY_TASK)),
):
    tasks = services.create_weekly_tasks(db, payload=payload, actor=current_user)
    commit_or_conflict(db, detail="A weekly task for that sector and week already exists.")
    for task in tasks:
        db.refresh(task)
    return tasks


@router.get("/weeklyTask/work/{work_id}", response_model=List[schemas.WeeklyTaskRead])
def list_weekly_tasks_for_work(
    work_id: str,
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_WEEKLY_TASK)),
):
    return services.list_weekly_tasks_for_work(db, work_id)


@router.get(
    "/weeklyTask/{task_or_work_id}",
    response_model=Union[schemas.WeeklyTaskRead, List[schemas.WeeklyTaskRead]],
)
def get_weekly_task(
    task_or_work_id: str,
    db: Session = Depends(get_read_db),
    _: User = Depends(require_capability(Capability.CAN_VIEW_WEEKLY_TASK)),
):
    """
    Look up by weekly task id; when no task has that id, fall back to the
    weekly tasks of the work item with that id.
    """
    task = db.get(models.WeeklyTask, task_or_work_id)
    if task is not None:
        return task
    if db.get(models.Work, task_or_work_id) is not None:
        return services.list_weekly_tasks_for_work(db, task_or_work_id)
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Weekly task not found",
    )


@router.put("/weeklyTask/{weekly_task_id}", response_model=schemas.WeeklyTaskRead)
def update_weekly_task(
    weekly_task_id: str,
    payload: schemas.WeeklyTaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_capability(Capability.CAN_UPDATE_WEEKLY_TASK)),
):
    task = services.update_weekly_task(
        db,
        weekly_task_id=weekly_task_id,
        payload=payload,
        actor=current_user,
    )
    commit_or_conflict(db)
    db.refresh(task)
    return task
