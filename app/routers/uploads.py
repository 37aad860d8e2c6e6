"""Upload router.

Serves stored images (drawings, child photos) back to clients.
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from app.services.storage import MEDIA_TYPES, get_upload_dir, is_safe_filename

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.get("/files/{filename}")
async def get_uploaded_file(filename: str):
    """Serve an uploaded file."""
    if not is_safe_filename(filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid filename",
        )

    file_path = get_upload_dir() / filename
    if not file_path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    return FileResponse(file_path, media_type=MEDIA_TYPES[file_path.suffix.lower()])
