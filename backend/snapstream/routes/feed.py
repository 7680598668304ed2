"""
Snapstream Backend — Feed Route Handlers
==========================================

What:  Public feed, following feed, own posts, a user's posts, single post
       lookup and post deletion.
How:   Extracts query parameters, delegates to PostService, returns JSON.

Route order matters:
    The static paths (/following, /my-posts, /user/...) are registered before
    /{post_id}; otherwise "following" would be parsed as a post id and fail
    validation.

Pagination:
    page (1-based) and limit (1-100). total_count is in the body and in the
    X-Total-Count header.
"""

import logging
from typing import Annotated, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user, get_optional_user
from snapstream.schemas.common import MAX_PAGE, ErrorResponse, MessageResponse
from snapstream.schemas.post import FeedResponse, PostDetailResponse
from snapstream.security import CurrentUser
from snapstream.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feed", tags=["Feed"])

# Reusable query parameter declarations
PageParam = Annotated[int, Query(ge=1, le=MAX_PAGE, description="1-based page number")]
LimitParam = Annotated[int, Query(ge=1, le=100, description="Items per page (max 100)")]


@router.get(
    "",
    response_model=FeedResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="List public posts",
    description="All public posts, sorted newest first (default), oldest first, or by like count.",
)
async def list_feed(
    response: Response,
    page: PageParam = 1,
    limit: LimitParam = settings.feed_page_size,
    sort: Literal["newest", "oldest", "popular"] = Query(default="newest"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    result = await post_service.list_feed(db, current_user, page=page, limit=limit, sort=sort)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/following",
    response_model=FeedResponse,
    summary="Public posts from followed accounts",
)
async def list_following_feed(
    response: Response,
    page: PageParam = 1,
    limit: LimitParam = settings.feed_page_size,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    result = await post_service.list_following_feed(db, current_user, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/my-posts",
    response_model=FeedResponse,
    summary="The caller's own posts, private ones included",
)
async def list_my_posts(
    response: Response,
    page: PageParam = 1,
    limit: LimitParam = settings.feed_page_size,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    result = await post_service.list_my_posts(db, current_user, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/user/{username}",
    response_model=FeedResponse,
    responses={
        403: {"description": "Private account not followed by the caller", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="List one user's posts",
    description=(
        "The owner sees all of their posts. Others see public posts only, and only "
        "when the account is public or they follow it."
    ),
)
async def list_user_posts(
    username: str,
    response: Response,
    page: PageParam = 1,
    limit: LimitParam = settings.feed_page_size,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    result = await post_service.list_user_posts(db, username, current_user, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/{post_id}",
    response_model=PostDetailResponse,
    responses={
        403: {"description": "Private post", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Get a single post with its comments",
)
async def get_post(
    post_id: UUID,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostDetailResponse:
    return await post_service.get_post(db, post_id, current_user)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the uploader", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Delete one of the caller's posts",
)
async def delete_post(
    post_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.delete_post(db, post_id, current_user)
    return MessageResponse(message="Post deleted successfully")
