"""
Snapstream Backend — Auth Service
===================================

What:  Registration, login and password change.
Why:   Password handling stays in one place; routes only see users and tokens.
How:   Hashes with werkzeug.security, issues tokens through snapstream.security.

Error semantics:
    Duplicate username/email      → ValidationError (400)
    Unknown email / bad password  → UnauthorizedError("Invalid credentials")
                                    (same message for both, so login does not
                                    reveal which emails are registered)
"""

import logging
from typing import Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.exceptions import (
    DatabaseError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from snapstream.models.user import User
from snapstream.schemas.user import ChangePasswordRequest, LoginRequest, RegisterRequest
from snapstream.security import CurrentUser, create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Stateless; every method receives the request's session."""

    async def register(self, db: AsyncSession, data: RegisterRequest) -> User:
        """
        Create an account.

        Usernames are unique case-insensitively ("Alice" blocks "alice"), so
        profile URLs cannot be spoofed by case.

        Raises:
            ValidationError: username or email already taken
            DatabaseError: insert failed for another reason
        """
        try:
            result = await db.execute(
                select(User).where(
                    (func.lower(User.username) == data.username.lower())
                    | (User.email == data.email)
                )
            )
            existing = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error during registration lookup: %s", str(e))
            raise DatabaseError()

        if existing is not None:
            if existing.email == data.email:
                raise ValidationError("Email is already registered", field="email")
            raise ValidationError("Username is already taken", field="username")

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
        )
        try:
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same name
            raise ValidationError("Username or email is already registered")
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise DatabaseError()

        logger.info("User registered: %s (%s)", user.username, user.id)
        return user

    async def login(self, db: AsyncSession, data: LoginRequest) -> Tuple[str, User]:
        """
        Returns:
            (token, user)

        Raises:
            UnauthorizedError: unknown email or wrong password
        """
        try:
            result = await db.execute(select(User).where(User.email == data.email))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError()

        if user is None or not verify_password(user.password_hash, data.password):
            logger.info("Failed login attempt")
            raise UnauthorizedError("Invalid credentials")

        token = create_access_token(user.id, user.username)
        logger.info("User logged in: %s", user.username)
        return token, user

    async def change_password(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        data: ChangePasswordRequest,
    ) -> None:
        """
        Raises:
            NotFoundError: the token's user no longer exists
            ValidationError: current password wrong, or new equals current
        """
        user = await db.get(User, current_user.uid)
        if user is None:
            raise NotFoundError(resource="user", resource_id=current_user.id)

        if not verify_password(user.password_hash, data.current_password):
            raise ValidationError("Current password is incorrect", field="current_password")

        if data.new_password == data.current_password:
            raise ValidationError(
                "New password must be different from current password",
                field="new_password",
            )

        user.password_hash = hash_password(data.new_password)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error changing password for %s: %s", user.id, str(e))
            raise DatabaseError()

        logger.info("Password changed for user %s", user.username)


auth_service = AuthService()
