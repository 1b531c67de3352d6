"""
Settings routes: the event and category catalogues.

  GET    /api/settings/events/active         → {key, label} pairs for the form
  GET    /api/settings/categories/active     → {key, label} pairs for the form
  GET    /api/settings/{events|categories}            (admin) all rows
  POST   /api/settings/{events|categories}            (admin) add a row
  PATCH  /api/settings/{events|categories}/{id}       (admin) relabel / (de)activate
  DELETE /api/settings/{events|categories}/{id}       (admin) remove a row

Both catalogues share the same handlers; only the model differs.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_api.database import get_db
from expense_api.errors import AppError
from expense_api.models.lookup import Category, Event
from expense_api.models.profile import Profile
from expense_api.routers.auth import get_current_user, require_admin
from expense_api.schemas.lookup import LookupCreate, LookupOption, LookupResponse, LookupUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])

_CATALOGUES = {"events": Event, "categories": Category}


def _model_for(catalogue: str):
    model = _CATALOGUES.get(catalogue)
    if model is None:
        raise AppError(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"Unknown settings catalogue: {catalogue}",
        )
    return model


def _get_row(model, row_id: uuid.UUID, db: Session):
    row = db.get(model, row_id)
    if row is None:
        raise AppError(
            status_code=status.HTTP_404_NOT_FOUND,
            code=f"{model.__name__.upper()}_NOT_FOUND",
            message=f"{model.__name__} not found",
        )
    return row


@router.get("/{catalogue}/active", response_model=list[LookupOption])
def list_active(
    catalogue: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> list:
    model = _model_for(catalogue)
    return list(
        db.scalars(
            select(model).where(model.is_active.is_(True)).order_by(model.label)
        ).all()
    )


@router.get("/{catalogue}", response_model=list[LookupResponse])
def list_all(
    catalogue: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> list:
    model = _model_for(catalogue)
    return list(db.scalars(select(model).order_by(model.label)).all())


@router.post("/{catalogue}", response_model=LookupResponse, status_code=status.HTTP_201_CREATED)
def create_row(
    catalogue: str,
    payload: LookupCreate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    model = _model_for(catalogue)
    if db.scalar(select(model.id).where(model.key == payload.key)) is not None:
        raise AppError(
            status_code=status.HTTP_409_CONFLICT,
            code="DUPLICATE_KEY",
            message=f"A {model.__name__.lower()} with key '{payload.key}' already exists",
        )
    row = model(key=payload.key, label=payload.label, is_active=payload.is_active)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("%s %r created by %s", model.__name__, row.key, current_user.email)
    return row


@router.patch("/{catalogue}/{row_id}", response_model=LookupResponse)
def update_row(
    catalogue: str,
    row_id: uuid.UUID,
    payload: LookupUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
):
    model = _model_for(catalogue)
    row = _get_row(model, row_id, db)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(row, field, value)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{catalogue}/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_row(
    catalogue: str,
    row_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> Response:
    """Hard delete. Existing expenses keep the key; deactivate instead to keep the label."""
    model = _model_for(catalogue)
    row = _get_row(model, row_id, db)
    db.delete(row)
    db.commit()
    logger.info("%s %r deleted by %s", model.__name__, row.key, current_user.email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
