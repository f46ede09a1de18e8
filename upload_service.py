"""
upload_service.py — The Loading Dock
======================================
Stages one uploaded image on disk for the length of a request.
The staged file is removed on every exit path.
"""

import os
import asyncio
import logging
import tempfile
from dataclasses import dataclass
from contextlib import asynccontextmanager
from fastapi import UploadFile

from errors import LocalIOError, ANALYZE_FAILED

log = logging.getLogger("upload")

CHUNK_SIZE = 1024 * 1024
DEFAULT_MIME = "application/octet-stream"


@dataclass(frozen=True)
class StagedUpload:
    path:      str
    mime_type: str
    size:      int


async def _write_upload(upload_dir: str, upload: UploadFile) -> StagedUpload:
    await asyncio.to_thread(os.makedirs, upload_dir, exist_ok=True)
    size = 0
    tmp = await asyncio.to_thread(tempfile.NamedTemporaryFile, dir=upload_dir, prefix="upload_", delete=False)
    with tmp:
        try:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                await asyncio.to_thread(tmp.write, chunk)
                size += len(chunk)
        except Exception:
            tmp.close()
            os.unlink(tmp.name)
            raise
    return StagedUpload(path=tmp.name, mime_type=upload.content_type or DEFAULT_MIME, size=size)


@asynccontextmanager
async def staged_upload(upload_dir: str, upload: UploadFile):
    try:
        staged = await _write_upload(upload_dir, upload)
    except OSError as e:
        log.error(f"Could not stage upload {upload.filename!r}: {e}")
        raise LocalIOError(ANALYZE_FAILED) from e

    log.info(f"Staged {upload.filename!r} ({staged.mime_type}, {staged.size} bytes) at {staged.path}")
    try:
        yield staged
    finally:
        try:
            os.unlink(staged.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning(f"Could not remove staged upload {staged.path}: {e}")
