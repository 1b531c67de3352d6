"""Event / category schemas for the settings screen and the submission form."""

from typing import Optional

from pydantic import Field, field_validator

from expense_api.schemas.common import BaseSchema, TimestampedSchema


class LookupOption(BaseSchema):
    """Compact {key, label} pair used to fill form dropdowns."""

    key: str
    label: str


class LookupResponse(TimestampedSchema):
    key: str
    label: str
    is_active: bool


class LookupCreate(BaseSchema):
    key: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    label: str = Field(..., min_length=1, max_length=255)
    is_active: bool = True

    @field_validator("key", mode="before")
    @classmethod
    def lower_key(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class LookupUpdate(BaseSchema):
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    is_active: Optional[bool] = None
