"""Local image storage for drawings and child photos.

Files live flat in ``settings.UPLOAD_DIR`` under random names and are
served back through ``/api/v1/uploads/files/{filename}``.
"""

import logging
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile, status

from app.config import settings

logger = logging.getLogger(__name__)

EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}
ALLOWED_TYPES = set(EXTENSIONS)
MEDIA_TYPES = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png", ".webp": "image/webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
FILES_PATH = "/uploads/files/"


def get_upload_dir() -> Path:
    """Get or create the upload directory."""
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def file_url(filename: str) -> str:
    return f"{settings.API_V1_PREFIX}{FILES_PATH}{filename}"


def is_safe_filename(filename: str) -> bool:
    """Plain image file names only: no path separators, no other extensions."""
    if not filename or "/" in filename or "\\" in filename or ".." in filename:
        return False
    return Path(filename).suffix.lower() in MEDIA_TYPES


def local_path_for_url(url: str) -> Path | None:
    """Map a URL produced by :func:`file_url` back to its file, else None."""
    marker = f"{settings.API_V1_PREFIX}{FILES_PATH}"
    if marker not in url:
        return None
    filename = url.split(marker, 1)[1].split("?", 1)[0]
    if not is_safe_filename(filename):
        return None
    return get_upload_dir() / filename


async def save_image(file: UploadFile) -> str:
    """Validate and store an uploaded image.  Returns its URL."""
    if file.content_type not in ALLOWED_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed: {', '.join(sorted(ALLOWED_TYPES))}",
        )

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)} MB",
        )
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file",
        )

    filename = f"{uuid.uuid4()}{EXTENSIONS[file.content_type]}"
    (get_upload_dir() / filename).write_bytes(content)

    return file_url(filename)


def delete_image(url: str) -> None:
    """Remove a stored image.  Missing files and foreign URLs are ignored."""
    path = local_path_for_url(url)
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not delete stored file %s", path)
