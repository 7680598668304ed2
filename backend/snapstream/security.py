"""
Snapstream Backend — Tokens & Password Hashing
================================================

What:  Bearer token issue/verify (PyJWT, HS256) and password hashing
       (werkzeug.security).
Why:   Every protected route needs the same normalized identity; keeping the
       crypto in one module means routes and services never touch raw claims.
How:   Tokens carry `sub` (user id as string), `username`, `iat` and `exp`.
       Decoding failures of any kind become UnauthorizedError("Invalid token").

Identity normalization:
    Token ids are always strings. Services compare against database UUIDs via
    CurrentUser.uid, so a token minted by another client with a non-UUID
    subject fails here instead of deep inside a query.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from snapstream.config import settings
from snapstream.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated requester, as decoded from a bearer token."""

    id: str
    username: str

    @property
    def uid(self) -> uuid.UUID:
        return uuid.UUID(self.id)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(
    user_id: uuid.UUID,
    username: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user_id: The user's primary key (stored as a string in `sub`)
        username: Carried along so routes can log and denormalize without a lookup
        expires_delta: Override the configured lifetime (tests use negative values)
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_delta if expires_delta is not None else timedelta(days=settings.jwt_expire_days)
    payload = {
        "sub": str(user_id),
        "username": username,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> CurrentUser:
    """
    Verify a bearer token and return the identity it carries.

    Raises:
        UnauthorizedError: bad signature, expired, malformed, or missing claims
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise UnauthorizedError("Invalid token")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token: %s", type(e).__name__)
        raise UnauthorizedError("Invalid token")

    subject = str(payload.get("sub", ""))
    username = payload.get("username")
    try:
        uuid.UUID(subject)
    except ValueError:
        raise UnauthorizedError("Invalid token")
    if not isinstance(username, str) or not username:
        raise UnauthorizedError("Invalid token")

    return CurrentUser(id=subject, username=username)
