"""Mock S3-style object store backed by the local uploads directory."""

import hashlib
import logging
import os
import time
from typing import Optional

from pydantic import BaseModel

from mediahub.errors import UploadError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "mock-media-bucket"


class BlobUploadResult(BaseModel):
    key: str
    url: str
    etag: str
    bucket: str


class MockBlobStore:
    """Stores objects as files under ``base_dir/<key>`` and serves them from /uploads."""

    def __init__(self, base_dir: str, public_base_url: str, bucket: str = DEFAULT_BUCKET):
        self._base_dir = base_dir
        self._public_base_url = public_base_url.rstrip("/")
        self.bucket = bucket

    def _path_for(self, key: str) -> str:
        path = os.path.normpath(os.path.join(self._base_dir, key))
        if not path.startswith(os.path.normpath(self._base_dir) + os.sep):
            raise UploadError(f"Invalid object key '{key}'", key=key)
        return path

    def url_for(self, key: str) -> str:
        return f"{self._public_base_url}/uploads/{key}"

    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> BlobUploadResult:
        """Write ``data`` under ``key``. Raises UploadError on any I/O failure."""
        path = self._path_for(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise UploadError(f"Failed to upload {key}: {exc}", key=key) from exc

        logger.info(f"Uploaded {key} ({len(data)} bytes, {content_type})")
        return BlobUploadResult(
            key=key,
            url=self.url_for(key),
            etag=hashlib.md5(data).hexdigest(),
            bucket=self.bucket,
        )

    def signed_url(self, key: str, expires_in: int = 3600, now: Optional[float] = None) -> str:
        expires_ms = int(((now if now is not None else time.time()) + expires_in) * 1000)
        return f"{self.url_for(key)}?expires={expires_ms}"

    async def delete(self, key: str) -> None:
        try:
            os.remove(self._path_for(key))
        except FileNotFoundError:
            pass

    async def exists(self, key: str) -> bool:
        return os.path.exists(self._path_for(key))
