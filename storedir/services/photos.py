"""Store photo storage.

Photos are written as-is to UPLOADS_DIR under a random name; the returned
filename is what Store.photo stores. Only raster formats recognized by their
leading bytes (JPEG, PNG, GIF, WebP) are kept; the extension comes from the
detected format, never from the declared type. SVG is refused. Any failure
is logged and reported as "no photo" so it never blocks creating or editing a
store.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from storedir.settings import get_settings

logger = logging.getLogger("uvicorn.error")

MAX_PHOTO_BYTES = 10 * 1024 * 1024

# leading bytes -> extension
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "jpg"),
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
)

_DATA_URL = re.compile(r"^data:(?P<type>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class PhotoUpload:
    """Raw image bytes plus the declared MIME type."""

    data: bytes
    content_type: str


def uploads_dir() -> Path:
    """Ensure the uploads directory exists."""
    path = Path(get_settings().uploads_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def photo_from_data_url(value: str) -> PhotoUpload | None:
    """Decode a data:<mime>;base64,<payload> URL.

    Returns:
        PhotoUpload, or None if the value is not a base64 data URL.
    """
    m = _DATA_URL.match(value.strip())
    if not m:
        return None
    try:
        data = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Photo data URL has an invalid base64 payload")
        return None
    return PhotoUpload(data=data, content_type=m.group("type").lower())


def save_photo(upload: PhotoUpload) -> str | None:
    """Persist an uploaded photo.

    Args:
        upload: Image payload.

    Returns:
        Stored reference ("<uuid>.<ext>"), or None if the upload was rejected or could not be written.
    """
    content_type = upload.content_type.lower()
    if not content_type.startswith("image/"):
        logger.warning(f"Rejected photo upload with content type {content_type!r}")
        return None
    if not upload.data:
        logger.warning("Rejected empty photo upload")
        return None
    if len(upload.data) > MAX_PHOTO_BYTES:
        logger.warning(f"Rejected photo upload of {len(upload.data)} bytes")
        return None

    extension = detect_image_type(upload.data)
    if extension is None:
        logger.warning(f"Rejected photo upload declared as {content_type!r}: not a JPEG, PNG, GIF or WebP image")
        return None

    filename = f"{uuid4()}.{extension}"
    try:
        (uploads_dir() / filename).write_bytes(upload.data)
    except OSError as e:
        logger.warning(f"Failed to save photo {filename}: {e}")
        return None

    logger.info(f"Saved store photo {filename}")
    return filename


def detect_image_type(data: bytes) -> str | None:
    """File extension for a supported raster image, else None."""
    for signature, extension in _SIGNATURES:
        if data.startswith(signature):
            return extension
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


def discard_photo(reference: str) -> None:
    """Remove a stored photo whose store write did not go through."""
    try:
        (Path(get_settings().uploads_dir) / reference).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove photo {reference}: {e}")
        return
    logger.info(f"Removed orphaned photo {reference}")
