"""
Snapstream Backend — Image Storage Service
============================================

What:  Validates uploaded images, stores them on disk, resolves stored paths
       for serving, and removes them again.
Why:   Centralizes all file system operations with security checks.
How:   Checks the declared content type and size, decodes the bytes with
       Pillow, and writes them under a date-organized directory with a UUID
       filename.
Who:   Called by PostService (post images) and UserService (profile pictures).

Security Model:
    1. Declared type:   The multipart part must claim an `image/*` type
    2. Size check:      Enforced before Pillow touches the bytes
    3. Decode check:    Pillow must recognize and verify the image; the stored
                        extension and content type come from the detected
                        format, never from the client's filename
    4. UUID filename:   No user input reaches the file system path
    5. Serving:         resolve_path() refuses anything outside storage_root

Directory Structure:
    storage/
    ├── posts/2024/01/15/a1b2c3d4-....jpg
    └── avatars/2024/01/15/e5f6g7h8-....png
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from snapstream.config import settings
from snapstream.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Recognized Formats ────────────────────────────────────────────────────
# What: Pillow format name → (stored extension, served content type)
# Why explicit mapping: the stored file must be servable by browsers
IMAGE_FORMATS = {
    "JPEG": (".jpg", "image/jpeg"),
    "PNG": (".png", "image/png"),
    "GIF": (".gif", "image/gif"),
    "WEBP": (".webp", "image/webp"),
    "BMP": (".bmp", "image/bmp"),
}

POSTS_DIR = "posts"
AVATARS_DIR = "avatars"


@dataclass(frozen=True)
class StoredImage:
    """Result of a successful validate_and_store()."""

    relative_path: str
    absolute_path: str
    filename: str
    content_type: str
    size: int


class FileService:
    """
    Manages image validation, storage and cleanup.

    Lifecycle of an uploaded image:
        1. Route reads the multipart part → FileService.validate_and_store()
        2. Declared content type check (cheap, rejects non-images)
        3. Size check against the ceiling for this kind of upload
        4. Pillow decode + verify (catches renamed or truncated files)
        5. Async write to <category>/YYYY/MM/DD/<uuid><ext>
        6. Relative path is returned (stored in database)
        7. If the database write fails afterwards: cleanup_file()
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_content_type(self, content_type: Optional[str]) -> None:
        """
        Raises:
            ValidationError: the part does not declare an image/* type
        """
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError(
                message="Only image files are allowed",
                field="image",
                context={"content_type": content_type},
            )

    def validate_size(self, actual_size: int, max_size: int) -> None:
        """
        Raises:
            ValidationError with a human-readable size limit message
        """
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="image")

        if actual_size > max_size:
            max_mb = max_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def inspect_image(self, content: bytes) -> Tuple[str, str]:
        """
        Decode the bytes with Pillow and return (extension, content_type).

        Why decode instead of trusting the declared type:
            Content-Type is whatever the client says. Pillow reads the actual
            file signature and verify() walks the image structure, so a
            renamed text file or a truncated PNG is rejected here.

        Raises:
            ValidationError: not an image, or an unsupported image format
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            logger.info("Rejected upload that is not a decodable image: %s", type(e).__name__)
            raise ValidationError(
                message="Uploaded file is not a valid image",
                field="image",
            )

        if image_format not in IMAGE_FORMATS:
            raise ValidationError(
                message=f"Image format '{image_format}' is not supported",
                field="image",
                context={"format": image_format, "allowed": sorted(IMAGE_FORMATS)},
            )
        return IMAGE_FORMATS[image_format]

    def _generate_storage_path(self, category: str, extension: str) -> Tuple[Path, str]:
        """
        Returns (absolute_path, relative_path_from_storage_root) for a new
        <category>/YYYY/MM/DD/<uuid><ext> file.
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{category}/{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    async def store_file(self, content: bytes, extension: str, category: str = POSTS_DIR) -> Tuple[str, str]:
        """
        Write validated content to disk with async I/O.

        Returns:
            Tuple of (absolute_path, relative_path).

        Raises:
            FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(category, extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    def resolve_path(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an absolute one inside storage_root.

        Raises:
            ValidationError when the path escapes storage_root
            (e.g. "../../etc/passwd" written into a row by hand).
        """
        full_path = (self.storage_root / relative_path).resolve()
        if self.storage_root not in full_path.parents:
            raise ValidationError(message="Invalid file path")
        return full_path

    async def cleanup_file(self, relative_path: Optional[str]) -> None:
        """
        Remove a stored file (failed upload, deleted post, replaced avatar).

        Error handling:
            Missing files are fine. Other failures are logged and swallowed:
            the database change that made the file obsolete has already
            happened and must not be reported as failed.
        """
        if not relative_path:
            return
        try:
            path = self.resolve_path(relative_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))

    async def validate_and_store(
        self,
        content: bytes,
        content_type: Optional[str],
        max_size: int,
        category: str = POSTS_DIR,
    ) -> StoredImage:
        """
        Complete validation and storage pipeline.

        Validation order (cheapest first):
            1. Declared content type
            2. Size
            3. Pillow decode
            4. Store to disk
        """
        self.validate_content_type(content_type)
        self.validate_size(len(content), max_size)
        extension, detected_type = self.inspect_image(content)

        absolute_path, relative_path = await self.store_file(content, extension, category)

        return StoredImage(
            relative_path=relative_path,
            absolute_path=absolute_path,
            filename=Path(relative_path).name,
            content_type=detected_type,
            size=len(content),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
