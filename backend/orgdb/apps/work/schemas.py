# backend/orgdb/apps/work/schemas.py
#
# Schemas for the work module:
# - Work*       : planned work items and their sector assignment.
# - WeeklyTask* : per-week, per-sector slices of a work item.
# - PickWork*   : claiming a weekly task.

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orgdb.schemas import RequestModel

from .models import WeeklyTaskStatusEnum, WorkStatusEnum


# ---------------------------------------------------------------------------
# Work
# ---------------------------------------------------------------------------


class WorkCreate(RequestModel):
    description: str = Field(min_length=1)
    assigned_by: Optional[str] = None
    sector_id: Optional[int] = None

    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None

    quality: Optional[str] = Field(default=None, max_length=64)
    quantity: Optional[int] = Field(default=None, ge=0)
    time_required: Optional[int] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_dates(self) -> "WorkCreate":
        if (
            self.planned_start_date
            and self.planned_end_date
            and self.planned_end_date < self.planned_start_date
        ):
            raise ValueError("planned_end_date must not be before planned_start_date")
        return self


class WorkAssign(RequestModel):
    sector_ids: List[int] = Field(min_length=1)


class WorkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    work_id: str = Field(validation_alias="id")
    description: str
    assigned_by: Optional[str] = None
    sector_id: Optional[int] = None

    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None

    quality: Optional[str] = None
    quantity: Optional[int] = None
    time_required: Optional[int] = None
    cost: Optional[float] = None

    status: WorkStatusEnum
    sector_ids: List[int] = []

    created_by_user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Weekly tasks
# ---------------------------------------------------------------------------


class WeeklyTaskCreate(RequestModel):
    """
    One task per sector is created for the given week.

    `description` falls back to the work item's description.
    """

    work_id: str = Field(min_length=1)
    sector_ids: List[int] = Field(min_length=1)
    week_number: int = Field(ge=1, le=53)
    description: Optional[str] = Field(default=None, min_length=1)


class WeeklyTaskUpdate(RequestModel):
    """
    Partial update of a weekly task.

    `version` is optional; when sent, the write only applies if the stored
    version still matches.
    """

    description: Optional[str] = Field(default=None, min_length=1)
    week_number: Optional[int] = Field(default=None, ge=1, le=53)
    status: Optional[WeeklyTaskStatusEnum] = None
    version: Optional[int] = Field(default=None, ge=1)


class WeeklyTaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    weekly_task_id: str = Field(validation_alias="id")
    description: str
    status: WeeklyTaskStatusEnum
    work_id: str
    week_number: int
    sector_id: int
    picked_by: Optional[str] = None
    picked_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime


class PickWorkRequest(RequestModel):
    weekly_task_id: str = Field(min_length=1)
