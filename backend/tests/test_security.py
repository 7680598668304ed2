"""
Snapstream Backend — Token & Password Unit Tests
==================================================

What:  Tests for bearer token issue/verify and password hashing.
Why:   Every protected route trusts decode_access_token(); a token that
       decodes when it should not is an account takeover.

Test Strategy:
    ✅ Round trip of id and username
    ✅ Expired, tampered, foreign-secret and malformed tokens are rejected
    ✅ Tokens with a non-UUID subject or without a username are rejected
    ✅ Password hashes verify only the original password
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from snapstream.config import settings
from snapstream.exceptions import UnauthorizedError
from snapstream.security import (
    CurrentUser,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestAccessTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token(user_id, "alice")

        current = decode_access_token(token)

        assert current == CurrentUser(id=str(user_id), username="alice")
        assert current.uid == user_id

    def test_default_lifetime_is_seven_days(self):
        token = create_access_token(uuid.uuid4(), "alice")
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_expired_token_rejected(self):
        token = create_access_token(uuid.uuid4(), "alice", expires_delta=timedelta(seconds=-1))
        with pytest.raises(UnauthorizedError, match="Invalid token"):
            decode_access_token(token)

    def test_tampered_token_rejected(self):
        token = create_access_token(uuid.uuid4(), "alice")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")])
        with pytest.raises(UnauthorizedError):
            decode_access_token(tampered)

    def test_token_signed_with_other_secret_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "username": "mallory", "iat": now, "exp": now + timedelta(hours=1)},
            "some-other-secret-of-sufficient-length-123",
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError):
            decode_access_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(UnauthorizedError):
            decode_access_token("not-a-jwt")

    def test_non_uuid_subject_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "12345", "username": "alice", "exp": now + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthorizedError):
            decode_access_token(token)

    def test_missing_username_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": now + timedelta(hours=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthorizedError):
            decode_access_token(token)


class TestPasswordHashing:

    def test_hash_verifies_original_only(self):
        hashed = hash_password("Secret123")

        assert hashed != "Secret123"
        assert verify_password(hashed, "Secret123")
        assert not verify_password(hashed, "secret123")

    def test_hashes_are_salted(self):
        assert hash_password("Secret123") != hash_password("Secret123")
