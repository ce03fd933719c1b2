"""
    Temporary local storage for multipart uploads.

    Each incoming file is spooled to a uniquely named file under the upload
    directory and removed when the request that owns it is done with it,
    whatever the outcome.
"""
from contextlib import contextmanager
from typing import Iterator, Optional
import logging
import os
import shutil
import tempfile

from fastapi import UploadFile
from pydantic import BaseModel

log = logging.getLogger(__name__)

class UploadedFile(BaseModel):
    path: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size: int

    def read_bytes(self) -> bytes:
        with open(self.path, "rb") as fh:
            return fh.read()

def discard(path: str):
    """Removes a buffered file. Missing files are ignored."""
    try:
        os.remove(path)
        log.debug("Removed temporary upload %s", path)
    except FileNotFoundError:
        pass

@contextmanager
def buffered_upload(upload: UploadFile, upload_dir: str) -> Iterator[UploadedFile]:
    """Writes ``upload`` to ``upload_dir`` and yields its description.

    The temporary file is deleted on exit, including when the body raises.
    """
    os.makedirs(upload_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="upload_", dir=upload_dir)
    try:
        with os.fdopen(fd, "wb") as out:
            upload.file.seek(0)
            shutil.copyfileobj(upload.file, out)
        uploaded = UploadedFile(
            path=path,
            filename=upload.filename or None,
            content_type=upload.content_type,
            size=os.path.getsize(path),
        )
        log.debug("Buffered upload %s (%d bytes) at %s", uploaded.filename, uploaded.size, path)
        yield uploaded
    finally:
        discard(path)
