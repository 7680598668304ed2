"""
Snapstream Backend — User Service (Profiles & Follows)
========================================================

What:  Own and public profiles, profile updates, the follow graph, user
       search and profile pictures.
How:   Counts (followers, following, posts) are COUNT queries over indexed
       columns; nothing is denormalized onto the user row.

Identity lookup:
    Users are resolved by the token's id. GET /api/profile/me additionally
    falls back to the token's username when the id misses (tokens minted
    before an id migration); the fallback is logged as a warning so it can be
    removed once no such tokens remain.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.exceptions import DatabaseError, NotFoundError, ValidationError
from snapstream.models.post import Post
from snapstream.models.user import Follow, User
from snapstream.schemas.post import ProfileResponse
from snapstream.schemas.user import (
    FollowResponse,
    OwnProfile,
    ProfileUpdateRequest,
    PublicProfile,
    UserSummary,
)
from snapstream.security import CurrentUser
from snapstream.services.file_service import AVATARS_DIR, file_service
from snapstream.services.post_service import post_service
from snapstream.services.presenters import post_response, profile_picture_url, user_summary

logger = logging.getLogger(__name__)

PROFILE_POSTS_LIMIT = 20
USER_SEARCH_LIMIT = 10


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserService:

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def resolve_current_user(self, db: AsyncSession, current_user: CurrentUser) -> User:
        """Token id first, then token username (logged)."""
        user = await db.get(User, current_user.uid)
        if user is not None:
            return user

        result = await db.execute(
            select(User).where(func.lower(User.username) == current_user.username.lower())
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=current_user.id)

        logger.warning(
            "Resolved token for %s by username; token id %s matched no user",
            current_user.username, current_user.id,
        )
        return user

    # ── Counts ────────────────────────────────────────────────────────────

    async def _count(self, db: AsyncSession, query) -> int:
        try:
            return (await db.execute(query)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error counting: %s", str(e))
            raise DatabaseError()

    async def follower_count(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        return await self._count(
            db, select(func.count()).select_from(Follow).where(Follow.followed_id == user_id)
        )

    async def following_count(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        return await self._count(
            db, select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        )

    async def post_count(self, db: AsyncSession, user_id: uuid.UUID, include_private: bool) -> int:
        query = select(func.count()).select_from(Post).where(Post.uploader_id == user_id)
        if not include_private:
            query = query.where(Post.is_private.is_(False))
        return await self._count(db, query)

    async def _public_profile(
        self,
        db: AsyncSession,
        user: User,
        viewer_id: Optional[uuid.UUID],
    ) -> dict:
        is_self = viewer_id is not None and viewer_id == user.id
        is_following = False
        if viewer_id is not None and not is_self:
            is_following = await post_service.is_following(db, viewer_id, user.id)
        return {
            "id": user.id,
            "username": user.username,
            "profile_picture_url": profile_picture_url(user),
            "bio": user.bio,
            "is_private_account": user.is_private_account,
            "created_at": user.created_at,
            "follower_count": await self.follower_count(db, user.id),
            "following_count": await self.following_count(db, user.id),
            "post_count": await self.post_count(db, user.id, include_private=is_self),
            "is_following": is_following,
        }

    async def own_profile(self, db: AsyncSession, user: User) -> OwnProfile:
        fields = await self._public_profile(db, user, user.id)
        return OwnProfile(**fields, email=user.email)

    # ── Profiles ──────────────────────────────────────────────────────────

    async def get_own_profile(self, db: AsyncSession, current_user: CurrentUser) -> OwnProfile:
        user = await self.resolve_current_user(db, current_user)
        return await self.own_profile(db, user)

    async def get_profile(
        self,
        db: AsyncSession,
        username: str,
        viewer: Optional[CurrentUser],
    ) -> ProfileResponse:
        """
        Public profile card plus the newest posts the viewer may see.

        A private account the viewer does not follow still returns the card
        (counts included) with an empty post list and can_view=False.
        """
        viewer_id = viewer.uid if viewer else None
        owner = await post_service.get_user_by_username(db, username)

        can_view = await post_service.can_view_account(db, owner, viewer_id)
        posts = []
        if can_view:
            query = (
                post_service.user_posts_query(owner, viewer_id)
                .order_by(Post.upload_time.desc(), Post.id.desc())
                .limit(PROFILE_POSTS_LIMIT)
            )
            try:
                rows = (await db.execute(query)).scalars().all()
            except SQLAlchemyError as e:
                logger.error("Database error loading profile posts for %s: %s", username, str(e))
                raise DatabaseError()
            posts = [post_response(p, viewer_id) for p in rows]

        return ProfileResponse(
            user=PublicProfile(**await self._public_profile(db, owner, viewer_id)),
            posts=posts,
            can_view=can_view,
            is_own_profile=viewer_id is not None and viewer_id == owner.id,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        data: ProfileUpdateRequest,
    ) -> OwnProfile:
        """Mutates bio and is_private_account only; None means unchanged."""
        user = await self.get_user(db, current_user.uid)

        if data.bio is not None:
            user.bio = data.bio.strip()
        if data.is_private_account is not None:
            user.is_private_account = data.is_private_account

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating profile %s: %s", user.id, str(e))
            raise DatabaseError(message="Could not update your profile. Please try again.")

        logger.info("Profile updated for %s", user.username)
        return await self.own_profile(db, user)

    # ── Follow graph ──────────────────────────────────────────────────────

    async def toggle_follow(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        target_id: uuid.UUID,
    ) -> FollowResponse:
        """
        Follow the target, or unfollow if already following.

        Raises:
            ValidationError: the requester targets themselves
            NotFoundError: no such target user
        """
        if target_id == current_user.uid:
            raise ValidationError("You cannot follow yourself", field="user_id")

        target = await self.get_user(db, target_id)

        try:
            edge = await db.get(Follow, (current_user.uid, target.id))
            if edge is not None:
                await db.delete(edge)
                message, is_following = f"Unfollowed {target.username}", False
            else:
                db.add(Follow(follower_id=current_user.uid, followed_id=target.id))
                message, is_following = f"Now following {target.username}", True
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error toggling follow %s -> %s: %s", current_user.id, target_id, str(e))
            raise DatabaseError()

        logger.info("%s %s %s", current_user.username, "followed" if is_following else "unfollowed", target.username)
        return FollowResponse(message=message, is_following=is_following)

    async def follow_status(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        target_id: uuid.UUID,
    ) -> bool:
        await self.get_user(db, target_id)
        return await post_service.is_following(db, current_user.uid, target_id)

    # ── Search ────────────────────────────────────────────────────────────

    async def search_users(
        self,
        db: AsyncSession,
        query: str,
        current_user: Optional[CurrentUser],
        limit: int = USER_SEARCH_LIMIT,
    ) -> List[UserSummary]:
        """
        Case-insensitive substring match on username.

        Queries shorter than two characters return nothing rather than the
        whole user table.
        """
        term = (query or "").strip()
        if len(term) < 2:
            return []

        stmt = (
            select(User)
            .where(User.username.ilike(f"%{escape_like(term)}%", escape="\\"))
            .order_by(User.username)
            .limit(limit)
        )
        if current_user is not None:
            stmt = stmt.where(User.id != current_user.uid)

        try:
            users = (await db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error searching users: %s", str(e))
            raise DatabaseError()
        return [user_summary(u) for u in users]

    # ── Profile picture ───────────────────────────────────────────────────

    async def set_profile_picture(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        content: bytes,
        content_type: Optional[str],
    ) -> str:
        """
        Store a new profile picture and drop the previous file.

        Returns:
            The picture's URL.
        """
        user = await self.get_user(db, current_user.uid)

        stored = await file_service.validate_and_store(
            content=content,
            content_type=content_type,
            max_size=settings.max_avatar_size,
            category=AVATARS_DIR,
        )

        previous = user.profile_picture
        user.profile_picture = stored.relative_path
        try:
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.cleanup_file(stored.relative_path)
            logger.error("Database error saving profile picture for %s: %s", user.id, str(e))
            raise DatabaseError()

        await file_service.cleanup_file(previous)
        logger.info("Profile picture updated for %s", user.username)
        return profile_picture_url(user)

    async def get_profile_picture_path(self, db: AsyncSession, username: str) -> Path:
        """
        Raises:
            NotFoundError: unknown user, no picture set, or file missing on disk
        """
        user = await post_service.get_user_by_username(db, username)
        if not user.profile_picture:
            raise NotFoundError(resource="profile picture", resource_id=username)

        path = file_service.resolve_path(user.profile_picture)
        if not path.exists():
            logger.warning("Profile picture for %s missing on disk: %s", username, user.profile_picture)
            raise NotFoundError(resource="profile picture", resource_id=username)
        return path


user_service = UserService()
