"""
Badge Storage Service

Stores uploaded achievement badge icons under <UPLOADS_DIR>/badges/ with a
random file name and returns the public path served under /uploads.
"""
import os
import uuid
from pathlib import Path
from typing import Optional
import logging

from fastapi import UploadFile

from core.config import settings
from core.exceptions import PayloadTooLargeError

logger = logging.getLogger(__name__)

BADGES_DIR = "badges"
PUBLIC_UPLOADS_PREFIX = "/uploads"
CHUNK_SIZE = 64 * 1024


def _safe_extension(filename: Optional[str]) -> str:
    base = os.path.basename(filename or "")
    _, ext = os.path.splitext(base)
    ext = "".join(ch for ch in ext[1:] if ch.isalnum())[:10]
    return f".{ext}" if ext else ""


async def store_badge_file(
    upload: UploadFile,
    uploads_dir: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> str:
    """
    Write ``upload`` to the badges directory.

    Returns the public path, e.g. ``/uploads/badges/<uuid>.png``.
    Raises PayloadTooLargeError (and removes the partial file) when the
    upload exceeds ``max_bytes``.
    """
    root = Path(uploads_dir or settings.UPLOADS_DIR)
    limit = max_bytes if max_bytes is not None else settings.BADGE_MAX_FILE_BYTES

    badge_dir = root / BADGES_DIR
    badge_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4()}{_safe_extension(upload.filename)}"
    target = badge_dir / filename

    total = 0
    try:
        with target.open("wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > limit:
                    raise PayloadTooLargeError()
                out.write(chunk)
    except PayloadTooLargeError:
        target.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    logger.info(f"Stored badge {filename} ({total} bytes)")
    return f"{PUBLIC_UPLOADS_PREFIX}/{BADGES_DIR}/{filename}"


def discard_badge_file(badge_path: str, uploads_dir: Optional[str] = None) -> None:
    """Remove a badge written by store_badge_file (by its public path)."""
    filename = os.path.basename(badge_path)
    if not filename:
        return
    target = Path(uploads_dir or settings.UPLOADS_DIR) / BADGES_DIR / filename
    target.unlink(missing_ok=True)
    logger.info(f"Discarded badge {filename}")
