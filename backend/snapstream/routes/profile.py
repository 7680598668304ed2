"""
Snapstream Backend — Profile Route Handlers
=============================================

What:  Own profile, public profiles, profile updates, follow toggle/status,
       user search and profile pictures under /api/profile.

Route order matters:
    Every fixed path (/me, /update, /search, /follow..., /picture) is
    registered before /{username}, which would otherwise swallow them.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user, get_optional_user
from snapstream.schemas.common import ErrorResponse
from snapstream.schemas.post import ProfileResponse
from snapstream.schemas.user import (
    FollowResponse,
    FollowStatusResponse,
    MeResponse,
    ProfilePictureResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    UserSearchResponse,
)
from snapstream.security import CurrentUser
from snapstream.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get(
    "/me",
    response_model=MeResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Token user no longer exists", "model": ErrorResponse},
    },
    summary="The caller's own profile, email included",
)
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    return MeResponse(user=await user_service.get_own_profile(db, current_user))


@router.put(
    "/update",
    response_model=ProfileUpdateResponse,
    responses={400: {"description": "Invalid fields", "model": ErrorResponse}},
    summary="Update bio and account privacy",
)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    user = await user_service.update_profile(db, current_user, body)
    return ProfileUpdateResponse(user=user)


@router.get(
    "/search",
    response_model=UserSearchResponse,
    summary="Search users by username",
    description="Case-insensitive substring match. Fewer than 2 characters returns an empty list.",
)
async def search_users(
    q: str = Query(default="", max_length=100, description="Part of a username"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserSearchResponse:
    return UserSearchResponse(users=await user_service.search_users(db, q, current_user))


@router.post(
    "/follow/{user_id}",
    response_model=FollowResponse,
    responses={
        400: {"description": "Cannot follow yourself", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
)
async def toggle_follow(
    user_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowResponse:
    return await user_service.toggle_follow(db, current_user, user_id)


@router.get(
    "/follow-status/{user_id}",
    response_model=FollowStatusResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Whether the caller follows a user",
)
async def follow_status(
    user_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FollowStatusResponse:
    return FollowStatusResponse(
        is_following=await user_service.follow_status(db, current_user, user_id)
    )


@router.post(
    "/picture",
    response_model=ProfilePictureResponse,
    responses={400: {"description": "Not an image or too large", "model": ErrorResponse}},
    summary="Upload a profile picture",
    description="Image files only, max 5MB. Replaces the previous picture.",
)
async def upload_profile_picture(
    picture: UploadFile = File(..., description="Profile picture image (max 5MB)"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfilePictureResponse:
    try:
        # One byte past the ceiling is enough to reject without reading everything
        content = await picture.read(settings.max_avatar_size + 1)
        url = await user_service.set_profile_picture(db, current_user, content, picture.content_type)
    finally:
        await picture.close()
    return ProfilePictureResponse(profile_picture_url=url)


@router.get(
    "/{username}",
    response_model=ProfileResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="A user's public profile and visible posts",
)
async def get_profile(
    username: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await user_service.get_profile(db, username, current_user)


@router.get(
    "/{username}/picture",
    responses={
        200: {"description": "Image file"},
        404: {"description": "No picture", "model": ErrorResponse},
    },
    summary="Serve a user's profile picture",
)
async def get_profile_picture(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    path = await user_service.get_profile_picture_path(db, username)
    return FileResponse(path=str(path), headers={"Cache-Control": "public, max-age=3600"})
