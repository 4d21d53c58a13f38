"""
File Handler Utility
HealthMate API

Upload policy checks and transient-file handling for report uploads.
"""

import os
import time
import logging
import secrets
import tempfile
from typing import Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
}


def normalize_mime_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_upload_policy(filename: str, content_type: Optional[str], size: int) -> Optional[str]:
    """
    Return the rejection reason for a file outside upload policy, or None.
    """
    mime = normalize_mime_type(content_type)
    if mime not in settings.allowed_mime_types_list:
        return f"Invalid file type '{mime or 'unknown'}'. Only PDF, JPEG, and PNG files are allowed."
    if size == 0:
        return "Uploaded file is empty"
    if size > settings.max_file_size_bytes:
        return f"File too large. Maximum size: {settings.max_file_size_mb}MB"
    return None


def is_analyzable(mime_type: str) -> bool:
    """Images and PDFs are sent to the model; anything else is stored only."""
    mime = normalize_mime_type(mime_type)
    return mime.startswith("image/") or mime == "application/pdf"


def detect_format(filename: str, content_type: Optional[str]) -> str:
    mime = normalize_mime_type(content_type)
    if mime in _EXTENSIONS:
        return _EXTENSIONS[mime]
    if filename and "." in filename:
        return filename.rsplit(".", 1)[-1].lower()
    return "bin"


def build_storage_id(user_id: str) -> str:
    """<user>_<epoch millis>_<random>, unique per stored object."""
    return f"{user_id}_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


def write_temp_file(content: bytes, suffix: str = "") -> str:
    """Write bytes to a transient file and return its path."""
    fd, path = tempfile.mkstemp(
        prefix="healthmate_",
        suffix=f".{suffix}" if suffix else "",
        dir=settings.upload_temp_dir,
    )
    with os.fdopen(fd, "wb") as handle:
        handle.write(content)
    return path


def remove_temp_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temp file %s: %s", path, e)
