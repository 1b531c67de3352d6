"""Shared schema primitives."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class IDSchema(BaseSchema):
    id: uuid.UUID


class TimestampedSchema(IDSchema):
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseSchema):
    message: str


class ErrorDetail(BaseSchema):
    field: str | None = None
    message: str


class ErrorBody(BaseSchema):
    code: str
    message: str
    status_code: int
    details: Any = None


class ErrorResponse(BaseSchema):
    success: bool = False
    error: ErrorBody


class Pagination(BaseSchema):
    page: int
    limit: int
    total: int
    total_pages: int
