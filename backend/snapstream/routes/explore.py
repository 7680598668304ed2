"""
Snapstream Backend — Explore Route Handlers
=============================================

What:  Trending posts, popular users and search under /api/explore.
Who:   Called by the SPA's Explore page; none of these require a token, but a
       valid one fills in `is_liked` on returned posts.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.database import get_db_session
from snapstream.dependencies import get_optional_user
from snapstream.schemas.common import ErrorResponse
from snapstream.schemas.post import PopularUsersResponse, SearchResponse, TrendingResponse
from snapstream.security import CurrentUser
from snapstream.services.explore_service import explore_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/explore", tags=["Explore"])


@router.get(
    "/trending",
    response_model=TrendingResponse,
    summary="Public posts ranked by engagement",
    description="Ranked by likes + 2 x comments, newest first on ties.",
)
async def trending(
    limit: int = Query(default=settings.trending_limit, ge=1, le=50),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> TrendingResponse:
    return TrendingResponse(posts=await explore_service.trending(db, current_user, limit))


@router.get(
    "/popular-users",
    response_model=PopularUsersResponse,
    summary="Users ranked by followers and public posts",
    description="Ranked by followers + 5 x public posts.",
)
async def popular_users(
    limit: int = Query(default=settings.popular_users_limit, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> PopularUsersResponse:
    return PopularUsersResponse(users=await explore_service.popular_users(db, limit))


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={400: {"description": "Query shorter than 2 characters", "model": ErrorResponse}},
    summary="Search public posts and users",
)
async def search(
    q: str = Query(default="", max_length=100),
    type: Literal["all", "posts", "users"] = Query(default="all"),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> SearchResponse:
    return await explore_service.search(db, q, type, current_user)
