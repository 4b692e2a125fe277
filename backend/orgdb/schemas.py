# backend/orgdb/schemas.py

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# -------------------------------------------------------------------
# SHARED BASES
# -------------------------------------------------------------------

class RequestModel(BaseModel):
    """
    Base for request payloads.

    Clients send a mix of camelCase (`sectorId`, `weekNumber`, `zoneDetail`)
    and snake_case (`sector_ids`, `zone_name`) keys; both spellings are
    accepted for every field. Unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# -------------------------------------------------------------------
# ERROR PAYLOADS
# -------------------------------------------------------------------

class FieldError(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    detail: str = "Validation failed"
    errors: List[FieldError] = []
