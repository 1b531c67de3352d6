"""
Profile routes: the signed-in user's own account details.

  GET   /api/profiles/me   → own profile
  PATCH /api/profiles/me   → update name, email, phone and bank details
  GET   /api/profiles      → every profile (admin only)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_api.database import get_db
from expense_api.errors import AppError
from expense_api.models.profile import Profile
from expense_api.routers.auth import get_current_user, require_admin
from expense_api.schemas.profile import ProfileResponse, ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
def get_my_profile(current_user: Profile = Depends(get_current_user)) -> Profile:
    return current_user


@router.patch("/me", response_model=ProfileResponse)
def update_my_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> Profile:
    changes = payload.model_dump(exclude_unset=True)

    new_email = changes.get("email")
    if new_email and new_email != current_user.email:
        taken = db.scalar(
            select(Profile.id).where(Profile.email == new_email, Profile.id != current_user.id)
        )
        if taken is not None:
            raise AppError(
                status_code=status.HTTP_409_CONFLICT,
                code="EMAIL_EXISTS",
                message="An account with this email already exists",
            )

    for field, value in changes.items():
        # name and email are required columns
        if value is None and field in ("name", "email"):
            continue
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    logger.info("Profile %s updated: %s", current_user.email, sorted(changes))
    return current_user


@router.get("", response_model=list[ProfileResponse])
def list_profiles(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_admin),
) -> list[Profile]:
    return list(db.scalars(select(Profile).order_by(Profile.created_at.desc())).all())
