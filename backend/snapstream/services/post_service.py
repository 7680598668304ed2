"""
Snapstream Backend — Post Service (Feed & Upload Orchestrator)
================================================================

What:  Upload, listing, lookup and deletion of posts.
Why:   Every read path applies the same visibility rules, so they live here
       instead of being repeated per route.
How:   Composes FileService for the image bytes and SQLAlchemy queries for the
       rows. Routes pass the viewer's identity; the service decides what that
       viewer may see.

Visibility rules:
    - A private post is visible to its uploader only, everywhere.
    - A private account's public posts are visible to the owner and to
      accounts that follow it.

Upload flow (POST /api/upload):
    ┌──────────┐    ┌──────────────┐    ┌──────────┐
    │  Route   │───▶│  Validate &  │───▶│  Insert  │
    │ (bytes)  │    │  store file  │    │  Post    │
    └──────────┘    └──────────────┘    └──────────┘
    A failed insert removes the stored file again.

Pagination:
    Offset-based (page/limit). The feed is browsed page by page and sorted by
    popularity as well as time, which a time cursor cannot express.
"""

import logging
import uuid
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from snapstream.models.post import Like, Post
from snapstream.models.user import Follow, User
from snapstream.schemas.post import CAPTION_MAX_LENGTH, FeedResponse, PostDetailResponse
from snapstream.security import CurrentUser
from snapstream.services.file_service import POSTS_DIR, file_service
from snapstream.services.presenters import post_detail_response, post_response

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("newest", "oldest", "popular")


def parse_tags(raw: Optional[str]) -> List[str]:
    """
    "Beach, Sunset,,beach " → ["beach", "sunset"]

    Comma separated, trimmed, lower-cased, empties and duplicates dropped,
    first occurrence order kept.
    """
    if not raw:
        return []
    tags: List[str] = []
    for part in raw.split(","):
        tag = part.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def like_count_column():
    """Correlated COUNT of likes for the enclosing Post row."""
    return (
        select(func.count(Like.user_id))
        .where(Like.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


class PostService:
    """
    Business logic layer for posts.

    Error Handling Strategy:
        Application errors propagate as-is. SQLAlchemy errors are logged with
        their driver message and re-raised as a generic DatabaseError.
    """

    # ── Upload ────────────────────────────────────────────────────────────

    async def create_post(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        content: bytes,
        content_type: Optional[str],
        original_name: Optional[str],
        caption: str = "",
        is_private: bool = False,
        tags: Optional[str] = None,
    ) -> Post:
        """
        Store an uploaded image and create its post.

        Error Recovery:
            Validation fails → ValidationError (400), nothing written
            Disk write fails → FileStorageError (500)
            Insert fails     → DatabaseError (500), stored file removed
        """
        caption = (caption or "").strip()
        if len(caption) > CAPTION_MAX_LENGTH:
            raise ValidationError(
                f"Caption must be at most {CAPTION_MAX_LENGTH} characters",
                field="caption",
            )

        uploader = await db.get(User, current_user.uid)
        if uploader is None:
            raise NotFoundError(resource="user", resource_id=current_user.id)

        stored = await file_service.validate_and_store(
            content=content,
            content_type=content_type,
            max_size=settings.max_upload_size,
            category=POSTS_DIR,
        )

        try:
            post = Post(
                filename=stored.filename,
                original_name=(original_name or stored.filename)[:255],
                content_type=stored.content_type,
                size=stored.size,
                storage_path=stored.relative_path,
                caption=caption,
                tags=parse_tags(tags),
                is_private=is_private,
                uploader_id=uploader.id,
                uploader_username=uploader.username,
                uploader=uploader,
                likes=[],
                comments=[],
            )
            db.add(post)
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.cleanup_file(stored.relative_path)
            logger.error("Database error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="An error occurred while saving your post. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Post %s created by %s (%d bytes, private=%s)",
            post.id, uploader.username, stored.size, is_private,
        )
        return post

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_post_row(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        """
        Raises:
            NotFoundError: no such post
        """
        try:
            post = await db.get(Post, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(message="Could not retrieve the post. Please try again.")
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def get_visible_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        viewer_id: Optional[uuid.UUID],
    ) -> Post:
        """
        Raises:
            NotFoundError: no such post
            ForbiddenError: the post is private and the viewer is not its uploader
        """
        post = await self.get_post_row(db, post_id)
        if not post.is_visible_to(viewer_id):
            raise ForbiddenError("This post is private")
        return post

    async def get_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        viewer: Optional[CurrentUser],
    ) -> PostDetailResponse:
        viewer_id = viewer.uid if viewer else None
        post = await self.get_visible_post(db, post_id, viewer_id)
        return post_detail_response(post, viewer_id)

    async def is_following(
        self,
        db: AsyncSession,
        follower_id: uuid.UUID,
        followed_id: uuid.UUID,
    ) -> bool:
        result = await db.execute(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id,
                Follow.followed_id == followed_id,
            )
        )
        return result.first() is not None

    async def can_view_account(
        self,
        db: AsyncSession,
        owner: User,
        viewer_id: Optional[uuid.UUID],
    ) -> bool:
        """Whether the viewer may see the owner's (public) posts."""
        if viewer_id is not None and owner.id == viewer_id:
            return True
        if not owner.is_private_account:
            return True
        if viewer_id is None:
            return False
        return await self.is_following(db, viewer_id, owner.id)

    # ── Listings ──────────────────────────────────────────────────────────

    async def _paginate(
        self,
        db: AsyncSession,
        query: Select,
        page: int,
        limit: int,
        sort: str = "newest",
    ) -> Tuple[Sequence[Post], int]:
        """
        Run a filtered Post query as one page plus a total count.

        Query plan (public feed, newest):
            SELECT ... FROM files WHERE is_private = false
            ORDER BY upload_time DESC LIMIT :limit OFFSET :offset
            → ix_files_public_upload_time
        """
        count_query = select(func.count()).select_from(query.order_by(None).subquery())

        if sort == "oldest":
            query = query.order_by(Post.upload_time.asc(), Post.id.asc())
        elif sort == "popular":
            query = query.order_by(like_count_column().desc(), Post.upload_time.desc(), Post.id.desc())
        else:
            query = query.order_by(Post.upload_time.desc(), Post.id.desc())

        query = query.offset((page - 1) * limit).limit(limit)

        try:
            total_count = (await db.execute(count_query)).scalar() or 0
            posts = (await db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return posts, total_count

    def _feed_response(
        self,
        posts: Sequence[Post],
        total_count: int,
        page: int,
        limit: int,
        viewer_id: Optional[uuid.UUID],
    ) -> FeedResponse:
        return FeedResponse(
            posts=[post_response(p, viewer_id) for p in posts],
            page=page,
            limit=limit,
            total_count=total_count,
            has_more=page * limit < total_count,
        )

    async def list_feed(
        self,
        db: AsyncSession,
        viewer: Optional[CurrentUser],
        page: int = 1,
        limit: int = 20,
        sort: str = "newest",
    ) -> FeedResponse:
        """All public posts, newest / oldest / most liked first."""
        if sort not in SORT_OPTIONS:
            raise ValidationError(
                f"Invalid sort '{sort}'. Must be one of: {', '.join(SORT_OPTIONS)}",
                field="sort",
            )
        viewer_id = viewer.uid if viewer else None
        query = select(Post).where(Post.is_private.is_(False))
        posts, total = await self._paginate(db, query, page, limit, sort)
        return self._feed_response(posts, total, page, limit, viewer_id)

    async def list_following_feed(
        self,
        db: AsyncSession,
        viewer: CurrentUser,
        page: int = 1,
        limit: int = 20,
    ) -> FeedResponse:
        """Public posts from the accounts the viewer follows."""
        followed = select(Follow.followed_id).where(Follow.follower_id == viewer.uid)
        query = select(Post).where(
            Post.is_private.is_(False),
            Post.uploader_id.in_(followed),
        )
        posts, total = await self._paginate(db, query, page, limit)
        return self._feed_response(posts, total, page, limit, viewer.uid)

    async def list_my_posts(
        self,
        db: AsyncSession,
        viewer: CurrentUser,
        page: int = 1,
        limit: int = 20,
    ) -> FeedResponse:
        """Every post of the viewer, private ones included."""
        query = select(Post).where(Post.uploader_id == viewer.uid)
        posts, total = await self._paginate(db, query, page, limit)
        return self._feed_response(posts, total, page, limit, viewer.uid)

    async def list_user_posts(
        self,
        db: AsyncSession,
        username: str,
        viewer: Optional[CurrentUser],
        page: int = 1,
        limit: int = 20,
    ) -> FeedResponse:
        """
        Posts of one user as the viewer may see them.

        Raises:
            NotFoundError: unknown username
            ForbiddenError: private account the viewer does not follow
        """
        viewer_id = viewer.uid if viewer else None
        owner = await self.get_user_by_username(db, username)

        if not await self.can_view_account(db, owner, viewer_id):
            raise ForbiddenError("This account is private")

        query = self.user_posts_query(owner, viewer_id)
        posts, total = await self._paginate(db, query, page, limit)
        return self._feed_response(posts, total, page, limit, viewer_id)

    def user_posts_query(self, owner: User, viewer_id: Optional[uuid.UUID]) -> Select:
        """Owner sees everything; anyone else sees public posts only."""
        query = select(Post).where(Post.uploader_id == owner.id)
        if owner.id != viewer_id:
            query = query.where(Post.is_private.is_(False))
        return query

    async def get_user_by_username(self, db: AsyncSession, username: str) -> User:
        """Usernames are unique ignoring case, so lookups ignore case too."""
        try:
            result = await db.execute(
                select(User).where(func.lower(User.username) == username.lower())
            )
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", username, str(e))
            raise DatabaseError()
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return user

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        current_user: CurrentUser,
    ) -> None:
        """
        Delete a post with its likes, comments and stored image.

        Commits before touching the image: a failed commit leaves both the
        row and its file in place.

        Raises:
            NotFoundError: no such post
            ForbiddenError: requester is not the uploader
            DatabaseError: the delete could not be committed
        """
        post = await self.get_post_row(db, post_id)
        if post.uploader_id != current_user.uid:
            raise ForbiddenError("You can only delete your own posts")

        storage_path = post.storage_path
        try:
            await db.delete(post)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error deleting post %s: %s", post_id, str(e))
            raise DatabaseError(message="Could not delete the post. Please try again.")

        await file_service.cleanup_file(storage_path)
        logger.info("Post %s deleted by %s", post_id, current_user.username)


post_service = PostService()
