"""
Auth router: registration, login, token and password endpoints, plus the
authentication dependencies every other router uses.

  POST /api/auth/register         → create a viewer account, returns a token
  POST /api/auth/login            → JSON email + password, returns a token
  POST /api/auth/token            → OAuth2 password form (OpenAPI "Authorize")
  GET  /api/auth/me               → current profile
  POST /api/auth/change-password  → verify current password, set a new one
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_api.database import get_db
from expense_api.errors import AppError
from expense_api.models.profile import Profile, Role
from expense_api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
)
from expense_api.schemas.common import MessageResponse
from expense_api.schemas.profile import ProfileResponse
from expense_api.services.auth import (
    create_token_for,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


# ── Dependencies ──────────────────────────────────────────────────────────────


def _credentials_error(message: str = "Could not validate credentials") -> AppError:
    return AppError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code="UNAUTHORIZED",
        message=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _profile_from_token(token: str, db: Session) -> Profile:
    try:
        payload = decode_access_token(token)
        profile_id = uuid.UUID(str(payload.get("sub")))
    except (JWTError, ValueError):
        raise _credentials_error("Invalid or expired token")

    profile = db.get(Profile, profile_id)
    if profile is None:
        raise _credentials_error("User no longer exists")
    return profile


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    return _profile_from_token(token, db)


def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    """Like get_current_user, but anonymous requests get None instead of a 401."""
    if not token:
        return None
    return _profile_from_token(token, db)


def require_role(*roles: str):
    """Dependency factory: raises 403 if the user doesn't have one of the required roles."""

    def _check(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in roles:
            raise AppError(
                status_code=status.HTTP_403_FORBIDDEN,
                code="FORBIDDEN",
                message=f"Access denied. Required roles: {list(roles)}",
            )
        return current_user

    return _check


require_admin = require_role(Role.ADMIN)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _authenticate(db: Session, email: str, password: str) -> Profile:
    profile = db.scalar(select(Profile).where(Profile.email == email.lower()))
    if profile is None or not verify_password(password, profile.password_hash):
        raise AppError(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="INVALID_CREDENTIALS",
            message="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    profile.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(profile)
    logger.info("Login: %s", profile.email)
    return profile


def _token_response(profile: Profile) -> TokenResponse:
    return TokenResponse(
        access_token=create_token_for(profile),
        token_type="bearer",
        user=ProfileResponse.model_validate(profile),
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Create a viewer account. Admins are promoted later by another admin."""
    if db.scalar(select(Profile.id).where(Profile.email == payload.email)) is not None:
        raise AppError(
            status_code=status.HTTP_409_CONFLICT,
            code="EMAIL_EXISTS",
            message="An account with this email already exists",
        )

    profile = Profile(
        email=payload.email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=Role.VIEWER,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("Registered new profile %s", profile.email)
    return _token_response(profile)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Exchange email + password for a JWT access token."""
    return _token_response(_authenticate(db, payload.email, payload.password))


@router.post("/token", response_model=TokenResponse)
def login_form(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """OAuth2 password flow (username = email) for the interactive API docs."""
    return _token_response(_authenticate(db, form.username, form.password))


@router.get("/me", response_model=ProfileResponse)
def me(current_user: Profile = Depends(get_current_user)) -> Profile:
    return current_user


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> MessageResponse:
    if not verify_password(payload.current_password, current_user.password_hash):
        raise AppError(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="INVALID_CREDENTIALS",
            message="Current password is incorrect",
        )
    current_user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info("Password changed for %s", current_user.email)
    return MessageResponse(message="Password updated successfully")
