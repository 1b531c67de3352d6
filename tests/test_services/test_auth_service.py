"""Unit tests for password hashing and JWT helpers: no DB required."""

import uuid
from types import SimpleNamespace

import pytest
from jose import JWTError, jwt

from expense_api.services.auth import (
    create_access_token,
    create_token_for,
    decode_access_token,
    hash_password,
    validate_password_strength,
    verify_password,
)
from expense_api.settings import settings


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Passw0rd!")
        assert hashed != "Passw0rd!"
        assert verify_password("Passw0rd!", hashed)
        assert not verify_password("passw0rd!", hashed)

    def test_strong_password_has_no_problems(self):
        assert validate_password_strength("Sunday2025") == []

    def test_every_unmet_rule_is_reported(self):
        problems = validate_password_strength("abc")
        assert len(problems) == 3
        assert any("8 characters" in p for p in problems)
        assert any("uppercase" in p for p in problems)
        assert any("number" in p for p in problems)


class TestTokens:
    def test_token_carries_profile_claims(self):
        profile = SimpleNamespace(id=uuid.uuid4(), email="a@example.com", role="admin")
        claims = decode_access_token(create_token_for(profile))
        assert claims["sub"] == str(profile.id)
        assert claims["email"] == "a@example.com"
        assert claims["role"] == "admin"
        assert claims["iss"] == settings.jwt_issuer
        assert claims["aud"] == settings.jwt_audience
        assert claims["exp"] > claims["iat"]

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "x"}, expires_minutes=-1)
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_audience_rejected(self):
        token = jwt.encode(
            {"sub": "x", "iss": settings.jwt_issuer, "aud": "someone-else"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_signature_rejected(self):
        token = jwt.encode(
            {"sub": "x", "iss": settings.jwt_issuer, "aud": settings.jwt_audience},
            "a-different-secret",
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)
