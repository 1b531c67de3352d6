"""
Password hashing and JWT helpers.

Tokens are HS256-signed and carry sub (profile id), email, role, plus
iss/aud claims that are checked on decode.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import jwt
from passlib.context import CryptContext

from expense_api.settings import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_MIN_LENGTH = 8


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def validate_password_strength(password: str) -> list[str]:
    """Return the list of unmet password rules (empty when the password is acceptable)."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain a lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain a number")
    return problems


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    payload = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload.update(
        {
            "exp": expire,
            "iat": datetime.now(timezone.utc),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
        }
    )
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_token_for(profile) -> str:
    return create_access_token(
        {"sub": str(profile.id), "email": profile.email, "role": profile.role}
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a token. Raises jose.JWTError on any failure."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
