"""
Snapstream Backend — Auth Route Handlers
==========================================

What:  POST /api/auth/register, /login and /change-password.
Who:   Called by the SPA's login and settings pages.

Rate limiting:
    Everything under /api/auth/ counts against the tighter auth bucket in
    RateLimitMiddleware (20 requests / 15 minutes per IP by default).
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user
from snapstream.schemas.common import ErrorResponse, MessageResponse
from snapstream.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from snapstream.security import CurrentUser
from snapstream.services.auth_service import auth_service
from snapstream.services.presenters import user_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={
        400: {"description": "Invalid input or username/email taken", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    user = await auth_service.register(db, body)
    return RegisterResponse(user=user_summary(user))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token, user = await auth_service.login(db, body)
    return TokenResponse(token=token, username=user.username, user_id=user.id)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={
        400: {"description": "Wrong current password or weak new password", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
    },
    summary="Change the caller's password",
)
async def change_password(
    body: ChangePasswordRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.change_password(db, current_user, body)
    return MessageResponse(message="Password changed successfully")
