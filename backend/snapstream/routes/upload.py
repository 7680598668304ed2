"""
Snapstream Backend — Upload Route Handlers
============================================

What:  POST /api/upload (create a post from an image) and
       GET /api/upload/{post_id} (serve the stored image).

Request Flow (POST):
    1. Client sends multipart/form-data: image, caption, is_private, tags
    2. We read at most max_upload_size + 1 bytes (bounded memory)
    3. PostService handles: validate → store → insert
    4. Return 201 Created with the new post

Security Checks (this route):
    - File type: declared image/* and decodable by Pillow (FileService)
    - File size: max 10MB by default (FileService)
    - Private images: served to their uploader only
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.config import settings
from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user, get_optional_user
from snapstream.exceptions import NotFoundError
from snapstream.schemas.common import ErrorResponse
from snapstream.schemas.post import UploadResponse
from snapstream.security import CurrentUser
from snapstream.services.file_service import file_service
from snapstream.services.post_service import post_service
from snapstream.services.presenters import post_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])


@router.post(
    "",
    status_code=201,
    response_model=UploadResponse,
    responses={
        400: {"description": "Not an image, too large, or caption too long", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
    summary="Upload a photo",
    description=(
        "Upload an image (max 10MB) with an optional caption, privacy flag and "
        "comma-separated tags."
    ),
)
async def upload_post(
    image: UploadFile = File(..., description="Image file (max 10MB)"),
    caption: str = Form(default=""),
    is_private: bool = Form(default=False),
    tags: Optional[str] = Form(default=None, description="Comma separated, e.g. 'beach,sunset'"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UploadResponse:
    try:
        content = await image.read(settings.max_upload_size + 1)
        logger.info(
            "Received upload: filename=%s, size=%d bytes, user=%s",
            image.filename or "unknown",
            len(content),
            current_user.username,
        )
        post = await post_service.create_post(
            db,
            current_user,
            content=content,
            content_type=image.content_type,
            original_name=image.filename,
            caption=caption,
            is_private=is_private,
            tags=tags,
        )
    finally:
        await image.close()

    return UploadResponse(post=post_response(post, current_user.uid))


@router.get(
    "/{post_id}",
    responses={
        200: {"description": "Image file"},
        403: {"description": "Private post", "model": ErrorResponse},
        404: {"description": "Post or file not found", "model": ErrorResponse},
    },
    summary="Serve a post's image",
)
async def serve_image(
    post_id: UUID,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    viewer_id = current_user.uid if current_user else None
    post = await post_service.get_visible_post(db, post_id, viewer_id)

    path = file_service.resolve_path(post.storage_path)
    if not path.exists():
        logger.warning("Image for post %s missing on disk: %s", post_id, post.storage_path)
        raise NotFoundError(resource="file", resource_id=str(post_id))

    # Private images must not land in shared caches
    cache_control = "private, max-age=3600" if post.is_private else "public, max-age=86400"
    return FileResponse(
        path=str(path),
        media_type=post.content_type,
        headers={"Cache-Control": cache_control},
    )
