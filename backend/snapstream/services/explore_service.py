"""
Snapstream Backend — Explore Service
======================================

What:  Trending posts, popular users and combined search.
How:   Scores are computed in SQL with correlated COUNT subqueries, so ranking
       and limiting happen in the database instead of loading every post.

Scoring:
    engagement_score  = likes + 2 × comments          (public posts only)
    popularity_score  = followers + 5 × public posts

Ties are broken by recency (posts) and username (users) so results are
stable between requests.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.exceptions import DatabaseError, ValidationError
from snapstream.models.post import Comment, Post
from snapstream.models.user import Follow, User
from snapstream.schemas.post import (
    PopularUser,
    PostResponse,
    SearchResponse,
    TrendingPost,
)
from snapstream.security import CurrentUser
from snapstream.services.post_service import like_count_column
from snapstream.services.presenters import post_response, profile_picture_url
from snapstream.services.user_service import escape_like, user_service

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("all", "posts", "users")
SEARCH_LIMIT = 10
MIN_QUERY_LENGTH = 2


def comment_count_column():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


class ExploreService:

    async def trending(
        self,
        db: AsyncSession,
        viewer: Optional[CurrentUser],
        limit: int,
    ) -> List[TrendingPost]:
        viewer_id = viewer.uid if viewer else None
        score = (like_count_column() + 2 * comment_count_column()).label("engagement_score")
        query = (
            select(Post, score)
            .where(Post.is_private.is_(False))
            .order_by(score.desc(), Post.upload_time.desc(), Post.id.desc())
            .limit(limit)
        )
        try:
            rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.error("Database error computing trending posts: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not load trending posts. Please try again.")

        return [
            TrendingPost(
                **post_response(post, viewer_id).model_dump(),
                engagement_score=engagement_score or 0,
            )
            for post, engagement_score in rows
        ]

    async def popular_users(self, db: AsyncSession, limit: int) -> List[PopularUser]:
        followers = (
            select(func.count(Follow.follower_id))
            .where(Follow.followed_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        following = (
            select(func.count(Follow.followed_id))
            .where(Follow.follower_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        public_posts = (
            select(func.count(Post.id))
            .where(Post.uploader_id == User.id, Post.is_private.is_(False))
            .correlate(User)
            .scalar_subquery()
        )
        score = (followers + 5 * public_posts).label("popularity_score")

        query = (
            select(
                User,
                followers.label("follower_count"),
                following.label("following_count"),
                public_posts.label("post_count"),
                score,
            )
            .order_by(score.desc(), User.username.asc())
            .limit(limit)
        )
        try:
            rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.error("Database error computing popular users: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not load popular users. Please try again.")

        return [
            PopularUser(
                id=user.id,
                username=user.username,
                profile_picture_url=profile_picture_url(user),
                bio=user.bio,
                follower_count=follower_count or 0,
                following_count=following_count or 0,
                post_count=post_count or 0,
                popularity_score=popularity_score or 0,
            )
            for user, follower_count, following_count, post_count, popularity_score in rows
        ]

    async def search(
        self,
        db: AsyncSession,
        query: str,
        search_type: str,
        viewer: Optional[CurrentUser],
    ) -> SearchResponse:
        """
        Raises:
            ValidationError: query shorter than two characters, or unknown type
        """
        term = (query or "").strip()
        if len(term) < MIN_QUERY_LENGTH:
            raise ValidationError(
                f"Search query must be at least {MIN_QUERY_LENGTH} characters",
                field="q",
            )
        if search_type not in SEARCH_TYPES:
            raise ValidationError(
                f"Invalid type '{search_type}'. Must be one of: {', '.join(SEARCH_TYPES)}",
                field="type",
            )

        response = SearchResponse(query=term, type=search_type)
        if search_type in ("all", "posts"):
            response.posts = await self._search_posts(db, term, viewer.uid if viewer else None)
        if search_type in ("all", "users"):
            response.users = await user_service.search_users(db, term, None, limit=SEARCH_LIMIT)
        return response

    async def _search_posts(
        self,
        db: AsyncSession,
        term: str,
        viewer_id: Optional[uuid.UUID],
    ) -> List[PostResponse]:
        pattern = f"%{escape_like(term)}%"
        query = (
            select(Post)
            .where(
                Post.is_private.is_(False),
                or_(
                    Post.caption.ilike(pattern, escape="\\"),
                    Post.original_name.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Post.upload_time.desc(), Post.id.desc())
            .limit(SEARCH_LIMIT)
        )
        try:
            posts = (await db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error searching posts: %s", str(e))
            raise DatabaseError()
        return [post_response(p, viewer_id) for p in posts]


explore_service = ExploreService()
