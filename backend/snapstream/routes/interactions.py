"""
Snapstream Backend — Interaction Route Handlers
=================================================

What:  Like toggle and comment endpoints under /api/interactions.
Who:   Called by the like button and comment drawer on each post card.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user
from snapstream.schemas.common import ErrorResponse
from snapstream.schemas.post import (
    AddCommentResponse,
    CommentListResponse,
    CommentRequest,
    DeleteCommentResponse,
    LikeResponse,
)
from snapstream.security import CurrentUser
from snapstream.services.interaction_service import interaction_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interactions", tags=["Interactions"])

POST_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Private post", "model": ErrorResponse},
    404: {"description": "Post not found", "model": ErrorResponse},
}


@router.post(
    "/like/{post_id}",
    response_model=LikeResponse,
    responses=POST_ERRORS,
    summary="Like or unlike a post",
    description="Toggles the caller's like. Calling twice restores the original state.",
)
async def toggle_like(
    post_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await interaction_service.toggle_like(db, post_id, current_user)


@router.post(
    "/comment/{post_id}",
    status_code=201,
    response_model=AddCommentResponse,
    responses={
        400: {"description": "Empty or too long comment", "model": ErrorResponse},
        **POST_ERRORS,
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: UUID,
    body: CommentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AddCommentResponse:
    return await interaction_service.add_comment(db, post_id, current_user, body.text)


@router.get(
    "/comments/{post_id}",
    response_model=CommentListResponse,
    responses=POST_ERRORS,
    summary="List a post's comments, oldest first",
)
async def list_comments(
    post_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentListResponse:
    return await interaction_service.list_comments(db, post_id, current_user)


@router.delete(
    "/comment/{post_id}/{comment_id}",
    response_model=DeleteCommentResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Not the comment's author", "model": ErrorResponse},
        404: {"description": "Post or comment not found", "model": ErrorResponse},
    },
    summary="Delete one of the caller's comments",
)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DeleteCommentResponse:
    return await interaction_service.delete_comment(db, post_id, comment_id, current_user)
