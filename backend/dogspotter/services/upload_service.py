"""
Dog Spotter Backend — Image Upload Service
===========================================

What:  Stores dog photos on local disk and hands back public URLs.
How:   Validates content type and size, writes to date-organized directories
       under STORAGE_ROOT with UUID filenames, and serves them back through
       GET /api/files/{path}.
Who:   Upload routes (multipart, base64, delete) and the file-serving route.

Directory Structure:
    storage/
    └── 2025/
        └── 03/
            └── 14/
                ├── 0b6f...e1.jpg
                └── 77c2...9a.png

Public URL:  {PUBLIC_BASE_URL}/api/files/2025/03/14/0b6f...e1.jpg

Path safety:
    Filenames never contain user input. Paths coming back in (delete, serve)
    are resolved and must stay inside STORAGE_ROOT.
"""

import base64
import binascii
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from dogspotter.config import settings
from dogspotter.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

FILES_ROUTE_PREFIX = "/api/files/"

# Extensions for the common image types; other image/* types use their subtype
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/heic": ".heic",
    "image/heif": ".heif",
}

DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)
_SUBTYPE = re.compile(r"^[a-z0-9]+$")


class UploadService:
    """
    Manages the lifecycle of uploaded images.

        upload_file()   → multipart upload from the app camera/gallery
        upload_base64() → base64 body (optionally a data: URL)
        delete_file()   → remove by public URL
        resolve_path()  → absolute path for serving, or None
    """

    def __init__(self, storage_root: Optional[str] = None, public_base_url: Optional[str] = None):
        """
        Args:
            storage_root:    Override settings.storage_root (tests use a tmp dir).
            public_base_url: Override settings.public_base_url.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("UploadService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """Only image/* uploads are accepted. Returns the normalized type."""
        mime = (content_type or "").split(";")[0].strip().lower()
        if not mime.startswith("image/"):
            raise ValidationError(
                message="Only image files are allowed",
                field="image",
                context={"content_type": mime},
            )
        return mime

    def validate_size(self, size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)
        if size == 0:
            raise ValidationError(message="No image provided", field="image")
        if size > settings.max_file_size:
            raise ValidationError(
                message=f"Image size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def extension_for(self, mime_type: str, filename: Optional[str] = None) -> str:
        if mime_type in IMAGE_EXTENSIONS:
            return IMAGE_EXTENSIONS[mime_type]
        if filename:
            suffix = Path(filename).suffix.lower()
            if _SUBTYPE.match(suffix.lstrip(".")):
                return suffix
        subtype = mime_type.split("/", 1)[-1]
        return f".{subtype}" if _SUBTYPE.match(subtype) else ".jpg"

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """(absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def public_url(self, relative_path: str) -> str:
        return f"{self.public_base_url}{FILES_ROUTE_PREFIX}{relative_path}"

    async def store(self, content: bytes, extension: str) -> str:
        """
        Writes bytes to a new file and returns its public URL.

        Raises:
            FileStorageError: directory creation or the write failed
        """
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return self.public_url(relative_path)

    async def upload_file(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> str:
        """Validate-then-store pipeline for a multipart upload; returns the URL."""
        mime = self.validate_content_type(content_type)
        self.validate_size(len(content))
        return await self.store(content, self.extension_for(mime, filename))

    async def upload_base64(self, data: str, mime_type: Optional[str] = "image/jpeg") -> str:
        """
        Stores a base64 image. A leading `data:image/...;base64,` prefix is
        stripped. Raises ValidationError for undecodable data.
        """
        mime = self.validate_content_type(mime_type or "image/jpeg")
        cleaned = DATA_URL_PREFIX.sub("", data.strip())
        try:
            content = base64.b64decode(cleaned, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(message="Invalid base64 image data", field="image") from e

        self.validate_size(len(content))
        return await self.store(content, self.extension_for(mime))

    # ── Lookup & Removal ──────────────────────────────────────────────────

    def resolve_path(self, relative_path: str) -> Optional[Path]:
        """Absolute path of a stored file, or None if missing or outside storage."""
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root) or not candidate.is_file():
            return None
        return candidate

    def relative_path_from_url(self, image_url: str) -> Optional[str]:
        marker = image_url.find(FILES_ROUTE_PREFIX)
        if marker == -1:
            return None
        return image_url[marker + len(FILES_ROUTE_PREFIX):].split("?", 1)[0]

    async def delete_file(self, image_url: str) -> bool:
        """
        Removes the file behind a public URL.

        Returns False when the URL does not point at a stored file; OS errors
        while removing raise FileStorageError.
        """
        relative_path = self.relative_path_from_url(image_url)
        path = self.resolve_path(relative_path) if relative_path else None
        if path is None:
            logger.debug("Delete requested for unknown image: %s", image_url)
            return False

        try:
            os.remove(path)
        except OSError as e:
            logger.error("Failed to delete image %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to delete image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("Image deleted: %s", relative_path)
        return True
