# backend/orgdb/apps/zones/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from orgdb.apps.accounts.schemas import ProvisionedUserRead, UserProvision
from orgdb.schemas import RequestModel


# ---------------------------------------------------------------------------
# SECTORS
# ---------------------------------------------------------------------------


class SectorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    sector_id: int = Field(validation_alias="id")
    name: str
    zone_id: str
    group_id: Optional[str] = None


# ---------------------------------------------------------------------------
# ZONES
# ---------------------------------------------------------------------------


class ZoneDetail(RequestModel):
    """
    Zone contact details. `email_address` doubles as the login of the zone
    admin account created with the zone.
    """

    zone_name: str = Field(min_length=1, max_length=255)
    city_name: Optional[str] = Field(default=None, max_length=255)
    email_address: EmailStr
    contact_phone_number: Optional[str] = Field(default=None, max_length=64)
    role_id: Optional[int] = None
    password: Optional[str] = Field(default=None, min_length=8)


class ZoneCreate(RequestModel):
    users: List[UserProvision] = []
    zone_detail: ZoneDetail


class ZoneGroupSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    group_id: str = Field(validation_alias="id")
    group_name: str


class ZoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    zone_id: str = Field(validation_alias="id")
    zone_name: str
    city_name: Optional[str] = None
    email_address: str
    contact_phone_number: Optional[str] = None
    admin_user_id: Optional[str] = None
    created_at: datetime

    groups: List[ZoneGroupSummary] = []
    sectors: List[SectorRead] = []


class ZoneCreateResult(BaseModel):
    """
    Returned once by zone creation. Carries any generated temporary
    passwords; they cannot be retrieved later.
    """

    message: str = "Zone created successfully"
    zone: ZoneRead
    admin: ProvisionedUserRead
    users: List[ProvisionedUserRead] = []
