import logging
import os
import uuid
from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("SIGNAGE_UPLOAD_DIR", "uploads")
UPLOAD_URL_PREFIX = "/uploads/"
MAX_FILE_SIZE = int(os.getenv("SIGNAGE_MAX_FILE_SIZE", str(10 * 1024 * 1024)))
ACCEPTED_MIME_PREFIXES = ("image/", "video/")


class UnsupportedUpload(ValueError):
    pass


def ensure_storage() -> None:
    os.makedirs(UPLOAD_DIR, exist_ok=True)


def is_accepted_mime(mimetype: str | None) -> bool:
    return (mimetype or "").lower().startswith(ACCEPTED_MIME_PREFIXES)


def upload_url(filename: str) -> str:
    return f"{UPLOAD_URL_PREFIX}{filename}"


def stored_filename(url: str | None) -> str | None:
    """Filename behind an uploaded-file URL, None for external URLs."""
    if not url or not url.startswith(UPLOAD_URL_PREFIX):
        return None
    return os.path.basename(url)


def save_upload(file: UploadFile) -> tuple[str, int]:
    """
    Write an uploaded image/video under a fresh uuid name.

    The original extension is kept. Returns `(filename, size)`.
    """
    ensure_storage()
    if not is_accepted_mime(file.content_type):
        raise UnsupportedUpload("Only image and video files are allowed")
    content = file.file.read()
    if not content:
        raise UnsupportedUpload("Empty files cannot be uploaded")
    size = len(content)
    if size > MAX_FILE_SIZE:
        raise UnsupportedUpload(f"File exceeds the {MAX_FILE_SIZE // (1024 * 1024)} MB limit")
    _, ext = os.path.splitext(os.path.basename((file.filename or "").strip()))
    filename = f"{uuid.uuid4()}{ext.lower()}"
    path = os.path.join(UPLOAD_DIR, filename)
    with open(path, "wb") as f:
        f.write(content)
    logger.info("Stored upload %s (%d bytes)", filename, size)
    return filename, size


def delete_upload(filename: str) -> None:
    """Remove a stored upload; raises FileNotFoundError/OSError on failure."""
    path = os.path.join(UPLOAD_DIR, os.path.basename(filename))
    os.remove(path)


def discard_upload(filename: str | None) -> None:
    # File removal never fails the surrounding request.
    if not filename:
        return
    try:
        delete_upload(filename)
    except OSError:
        logger.warning("Could not delete file: %s", filename)
