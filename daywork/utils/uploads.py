import shutil
import uuid
from datetime import datetime
from pathlib import Path

from fastapi import UploadFile

from daywork.core.config import settings
from daywork.core.errors import InvalidInput

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _size_of(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def save_document_image(upload: UploadFile, user_id: int, upload_dir: str = None) -> str:
    """Validate and store an identity document image; returns its stored path."""
    ext = ALLOWED_IMAGE_TYPES.get(upload.content_type or "")
    if ext is None:
        raise InvalidInput("Only JPEG, PNG, and WebP images are allowed", field="document")
    if _size_of(upload) > settings.MAX_DOCUMENT_BYTES:
        limit_mb = settings.MAX_DOCUMENT_BYTES // (1024 * 1024)
        raise InvalidInput(f"File size exceeds the {limit_mb}MB limit", field="document")

    year_month = datetime.now().strftime("%Y/%m")
    target_dir = Path(upload_dir or settings.UPLOAD_DIR) / "documents" / year_month
    target_dir.mkdir(parents=True, exist_ok=True)

    unique_name = f"user_{user_id}_{uuid.uuid4().hex}.{ext}"
    file_path = target_dir / unique_name
    with open(file_path, "wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)

    return file_path.as_posix()


def discard_document_image(path: str):
    Path(path).unlink(missing_ok=True)
