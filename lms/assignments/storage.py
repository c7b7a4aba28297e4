"""
Disk storage for uploaded files.

Uploads are written to UPLOAD_DIR under a generated name and served
statically from ``/api/v1/uploads/<filename>``.
"""

import os
import random
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from fastapi import UploadFile

from lms.common.error_handling import StorageError, ValidationError
from lms.common.logger import get_logger
from lms.config import settings

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024
UPLOAD_URL_PREFIX = f"{settings.API_V1_STR}/uploads/"


@dataclass
class StoredFile:
    """A file written to the upload directory."""

    filename: str
    original_name: str
    size: int

    @property
    def url(self) -> str:
        return get_file_url(self.filename)


def get_file_url(filename: str) -> str:
    return f"{UPLOAD_URL_PREFIX}{filename}"


def get_file_path(filename: str) -> str:
    return os.path.join(settings.UPLOAD_DIR, filename)


def filename_from_url(url: str) -> str:
    """The stored filename is the last path segment of its URL."""
    return url.rstrip("/").split("/")[-1]


def generate_filename(original_name: Optional[str]) -> str:
    """``<epoch-ms>-<random up to 9 digits><original extension>``"""
    extension = os.path.splitext(original_name or "")[1]
    return f"{int(time.time() * 1000)}-{random.randint(0, 999999999)}{extension}"


async def save_upload(upload: UploadFile, max_size: Optional[int] = None) -> StoredFile:
    """
    Stream an uploaded file to the upload directory.

    Args:
        upload: The multipart file
        max_size: Size limit in bytes, defaults to MAX_FILE_SIZE

    Returns:
        The stored file

    Raises:
        ValidationError: If the file exceeds the size limit
        StorageError: If the file cannot be written
    """
    max_size = settings.MAX_FILE_SIZE if max_size is None else max_size
    filename = generate_filename(upload.filename)
    path = get_file_path(filename)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    size = 0
    try:
        with open(path, "wb") as target:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise ValidationError(f"File too large (maximum {max_size} bytes)")
                target.write(chunk)
    except ValidationError:
        remove_file(filename)
        raise
    except OSError as e:
        remove_file(filename)
        raise StorageError(f"Failed to store {upload.filename}", cause=e)

    logger.info(f"Stored upload {upload.filename} as {filename} ({size} bytes)")
    return StoredFile(filename=filename, original_name=upload.filename or filename, size=size)


async def save_uploads(uploads: Sequence[UploadFile]) -> List[StoredFile]:
    """Store several uploads, enforcing the per-request file count."""
    if len(uploads) > settings.MAX_UPLOAD_FILES:
        raise ValidationError(f"Too many files (maximum {settings.MAX_UPLOAD_FILES})")

    stored: List[StoredFile] = []
    try:
        for upload in uploads:
            stored.append(await save_upload(upload))
    except (ValidationError, StorageError):
        for item in stored:
            remove_file(item.filename)
        raise
    return stored


def remove_file(filename: str) -> bool:
    """Delete a stored file, returning whether it existed."""
    path = get_file_path(filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not remove stored file {path}: {e}")
        return False
    return True
