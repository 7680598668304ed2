"""
Snapstream Backend — Post, Like & Comment Models
==================================================

What:  ORM models for uploaded photos (`files`), their likes and comments.
Why:   A post is the unit of the feed; likes and comments are its owned
       children and disappear with it.
How:   Likes and comments are child rows keyed by post id. The Like primary
       key is (post_id, user_id), so "each user likes a post at most once"
       holds even if two toggle requests race.

Table name:
    The table keeps the historical name `files`; the model is called Post
    because that is what every route and schema calls it.

Loading strategy:
    uploader → joined (one row, always rendered with the post)
    likes, comments → selectin (one extra query per list of posts)
    Async sessions cannot lazy-load, so every relationship rendered in a
    response is loaded eagerly.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapstream.database import Base, utcnow
from snapstream.models.user import User


class Post(Base):
    """
    An uploaded image with caption, privacy flag, likes and comments.

    Query Patterns:
        - Public feed:  WHERE is_private = false ORDER BY upload_time DESC
                        → ix_files_public_upload_time
        - User posts:   WHERE uploader_id = :id ORDER BY upload_time DESC
                        → ix_files_uploader_upload_time
    """

    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Stored name ("<uuid>.jpg") and what the client called it
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relative path from storage_root: posts/YYYY/MM/DD/<uuid>.<ext>
    storage_path: Mapped[str] = mapped_column(String(255), nullable=False)

    caption: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_private: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    uploader_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Denormalized so list views do not need the users table
    uploader_username: Mapped[str] = mapped_column(String(30), nullable=False)

    upload_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    uploader: Mapped[User] = relationship(User, lazy="joined")
    likes: Mapped[List["Like"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Comment.created_at",
    )

    __table_args__ = (
        Index("ix_files_uploader_upload_time", "uploader_id", "upload_time"),
        Index("ix_files_public_upload_time", "is_private", "upload_time"),
    )

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    def is_liked_by(self, user_id: Optional[uuid.UUID]) -> bool:
        if user_id is None:
            return False
        return any(like.user_id == user_id for like in self.likes)

    def is_visible_to(self, user_id: Optional[uuid.UUID]) -> bool:
        """Private posts are visible to their uploader only."""
        return not self.is_private or self.uploader_id == user_id

    def __repr__(self) -> str:
        return (
            f"<Post(id={self.id}, uploader='{self.uploader_username}', "
            f"private={self.is_private})>"
        )


class Like(Base):
    """Presence of a row means the user likes the post."""

    __tablename__ = "likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("files.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="likes")


class Comment(Base):
    """
    A comment on a post. Has its own id so its author can delete it.
    """

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    username: Mapped[str] = mapped_column(String(30), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, username='{self.username}')>"
