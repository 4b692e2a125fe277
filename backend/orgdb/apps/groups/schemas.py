from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from orgdb.apps.accounts.schemas import ProvisionedUserRead, UserProvision
from orgdb.apps.zones.schemas import SectorRead
from orgdb.schemas import RequestModel


class GroupDetail(RequestModel):
    """
    Group contact details. `zone_id` defaults to the caller's own zone.
    """

    group_name: str = Field(min_length=1, max_length=255)
    email_address: EmailStr
    contact_phone_number: Optional[str] = Field(default=None, max_length=64)
    zone_id: Optional[str] = None
    role_id: Optional[int] = None
    password: Optional[str] = Field(default=None, min_length=8)


class GroupCreate(RequestModel):
    users: List[UserProvision] = []
    group_detail: GroupDetail


class GroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    group_id: str = Field(validation_alias="id")
    zone_id: str
    group_name: str
    email_address: str
    contact_phone_number: Optional[str] = None
    admin_user_id: Optional[str] = None
    created_at: datetime

    sectors: List[SectorRead] = []


class GroupCreateResult(BaseModel):
    message: str = "Group created successfully"
    group: GroupRead
    admin: ProvisionedUserRead
    users: List[ProvisionedUserRead] = []
