"""Profile schemas: the signed-in account and its payment details."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from expense_api.schemas.common import BaseSchema
from expense_api.schemas.expense import normalise_bank_account


class ProfileResponse(BaseSchema):
    id: uuid.UUID
    email: str
    name: str
    role: str
    phone: Optional[str] = None
    bank_account: Optional[str] = None
    bank_name: Optional[str] = None
    account_holder: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None


class ProfileUpdate(BaseSchema):
    """Self-service update. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=9, max_length=20)
    bank_account: Optional[str] = Field(None, max_length=34)
    bank_name: Optional[str] = Field(None, max_length=255)
    account_holder: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("bank_account", mode="before")
    @classmethod
    def clean_bank_account(cls, v):
        return normalise_bank_account(v)


class RoleUpdate(BaseSchema):
    role: Literal["admin", "viewer"]
