"""
Upload storage helpers.

Files are written under ``settings.UPLOAD_ROOT`` and referenced by their
public path ``/uploads/<name>``, which is what gets persisted on entities.
"""

import logging
import os
import secrets
from typing import Iterable, List, Optional

from fastapi import UploadFile

from campus_events.core.config import settings
from campus_events.core.errors import ValidationFailed

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")


def save_bytes(content: bytes, filename: str, allowed: Iterable[str] = IMAGE_EXTENSIONS) -> str:
    """Store content under the upload root; returns the public path"""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in tuple(allowed):
        raise ValidationFailed(f"Unsupported file type for {filename!r}")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailed(f"{filename!r} exceeds the maximum upload size")

    os.makedirs(settings.UPLOAD_ROOT, exist_ok=True)
    stored_name = f"{secrets.token_hex(8)}{ext}"
    with open(os.path.join(settings.UPLOAD_ROOT, stored_name), "wb") as f:
        f.write(content)
    return PUBLIC_PREFIX + stored_name


async def save_upload(file: Optional[UploadFile]) -> Optional[str]:
    if file is None or not file.filename:
        return None
    return save_bytes(await file.read(), file.filename)


async def save_uploads(files: Optional[List[UploadFile]]) -> List[str]:
    """All or nothing: a rejected file removes the ones already stored"""
    paths = []
    try:
        for file in files or []:
            path = await save_upload(file)
            if path:
                paths.append(path)
    except Exception:
        discard(paths)
        raise
    return paths


def discard(paths: Iterable[Optional[str]]) -> None:
    """Remove stored uploads, e.g. after the owning transaction failed"""
    for path in paths:
        if not path or not path.startswith(PUBLIC_PREFIX):
            continue
        try:
            os.remove(os.path.join(settings.UPLOAD_ROOT, path[len(PUBLIC_PREFIX):]))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove upload {path}: {e}")
