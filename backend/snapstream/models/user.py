"""
Snapstream Backend — User & Follow Models
===========================================

What:  ORM models for the `users` and `follows` tables.
Why:   Accounts own posts, comments and conversations; follows decide who may
       see a private account's posts.
How:   Follow edges live in their own table with a composite primary key
       (follower_id, followed_id) instead of follower/following arrays on the
       user row. Counting followers is a COUNT over an indexed column and a
       duplicate follow is impossible by construction.

Lifecycle:
    Created at registration; mutated by profile update, follow toggle and
    password change. Never hard-deleted.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from snapstream.database import Base, utcnow


class User(Base):
    """
    A registered account.

    Query Patterns:
        - Login:              WHERE email = :email          (unique index)
        - Profile / feed:     WHERE username = :username    (unique index)
        - Search:             WHERE username ILIKE :q
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # werkzeug hash string ("scrypt:32768:8:1$salt$hash"); the plain password
    # never leaves AuthService
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relative path under storage_root, e.g. "avatars/2024/01/15/<uuid>.png"
    profile_picture: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    bio: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    is_private_account: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class Follow(Base):
    """One directed follow edge: follower → followed."""

    __tablename__ = "follows"

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followed_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Follow({self.follower_id} -> {self.followed_id})>"
