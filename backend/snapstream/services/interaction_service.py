"""
Snapstream Backend — Interaction Service (Likes & Comments)
=============================================================

What:  Like toggling and comment add/list/delete on posts.
How:   Likes and comments are mutated through the Post's relationship
       collections, so the counts returned to the client are read from the
       same in-session state that is flushed to the database.

Authorization:
    - Interacting with a private post requires being its uploader.
    - A comment can be deleted by its author only (not by the post owner).
"""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import utcnow
from snapstream.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from snapstream.models.post import Comment, Like
from snapstream.models.user import User
from snapstream.schemas.post import (
    AddCommentResponse,
    CommentListResponse,
    DeleteCommentResponse,
    LikeResponse,
)
from snapstream.security import CurrentUser
from snapstream.services.post_service import post_service
from snapstream.services.presenters import comment_response

logger = logging.getLogger(__name__)


class InteractionService:

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", action, str(e))
            raise DatabaseError()

    async def toggle_like(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        current_user: CurrentUser,
    ) -> LikeResponse:
        """
        Like the post, or remove the like if present.

        Two consecutive calls restore the original state. The (post_id,
        user_id) primary key rejects a concurrent duplicate like as a
        DatabaseError instead of double counting it.
        """
        user_id = current_user.uid
        post = await post_service.get_visible_post(db, post_id, user_id)

        existing = next((like for like in post.likes if like.user_id == user_id), None)
        if existing is not None:
            post.likes.remove(existing)
            message, is_liked = "Post unliked", False
        else:
            post.likes.append(Like(user_id=user_id, created_at=utcnow()))
            message, is_liked = "Post liked", True

        await self._flush(db, "like toggle")
        logger.info("%s: post %s by %s", message, post_id, current_user.username)
        return LikeResponse(message=message, likes=post.like_count, is_liked=is_liked)

    async def add_comment(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        current_user: CurrentUser,
        text: str,
    ) -> AddCommentResponse:
        """
        Raises:
            ValidationError: text empty after trimming
            NotFoundError: no such post, or the commenter no longer exists
            ForbiddenError: private post of another user
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text is required", field="text")

        post = await post_service.get_visible_post(db, post_id, current_user.uid)

        # Username comes from the store, not from the token
        author = await db.get(User, current_user.uid)
        if author is None:
            raise NotFoundError(resource="user", resource_id=current_user.id)

        comment = Comment(
            id=uuid.uuid4(),
            user_id=author.id,
            username=author.username,
            text=text,
            created_at=utcnow(),
        )
        post.comments.append(comment)
        await self._flush(db, "comment insert")

        logger.info("Comment %s added to post %s by %s", comment.id, post_id, author.username)
        return AddCommentResponse(
            comment=comment_response(comment),
            total_comments=post.comment_count,
        )

    async def list_comments(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        viewer: CurrentUser,
    ) -> CommentListResponse:
        post = await post_service.get_visible_post(db, post_id, viewer.uid)
        return CommentListResponse(
            comments=[comment_response(c) for c in post.comments],
            total_comments=post.comment_count,
        )

    async def delete_comment(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        comment_id: uuid.UUID,
        current_user: CurrentUser,
    ) -> DeleteCommentResponse:
        """
        Raises:
            NotFoundError: post missing, or comment missing on this post
            ForbiddenError: requester is not the comment's author
        """
        post = await post_service.get_visible_post(db, post_id, current_user.uid)

        comment = next((c for c in post.comments if c.id == comment_id), None)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))

        if comment.user_id != current_user.uid:
            raise ForbiddenError("You can only delete your own comments")

        post.comments.remove(comment)
        await self._flush(db, "comment delete")

        logger.info("Comment %s deleted from post %s", comment_id, post_id)
        return DeleteCommentResponse(total_comments=post.comment_count)


interaction_service = InteractionService()
