"""Auth schemas: register, login, token response, password change."""

from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field, field_validator

from expense_api.schemas.common import BaseSchema
from expense_api.schemas.profile import ProfileResponse
from expense_api.services.auth import validate_password_strength


def _strong_password(v: str) -> str:
    problems = validate_password_strength(v)
    if problems:
        raise ValueError("; ".join(problems))
    return v


StrongPassword = Annotated[str, Field(max_length=128), AfterValidator(_strong_password)]


class RegisterRequest(BaseSchema):
    email: EmailStr
    password: StrongPassword
    name: str = Field(..., min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    user: ProfileResponse


class TokenPayload(BaseSchema):
    """Decoded JWT payload."""

    sub: str  # profile id
    email: str
    role: str


class ChangePasswordRequest(BaseSchema):
    current_password: str = Field(..., min_length=1)
    new_password: StrongPassword
