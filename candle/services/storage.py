"""
Media storage.
Firebase Storage bucket in production; a local directory served under
``/media`` in local dev mode.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from candle.utils.exceptions import StorageError

logger = logging.getLogger(__name__)

LOCAL_MEDIA_URL_PREFIX = "/media"


class StorageService:
    """Uploads bytes to a path and returns a URL clients can fetch."""

    def __init__(self, bucket: Optional[Any] = None, local_dir: str = "./cache/media"):
        """
        Args:
            bucket: ``firebase_admin.storage.bucket()``; None selects the
                local directory.
            local_dir: Root directory for local mode uploads.
        """
        self.bucket = bucket
        self.local_dir = Path(local_dir)

    def upload(self, data: bytes, path: str, content_type: str) -> str:
        if not data:
            raise StorageError("Cannot upload an empty file", "storage/invalid-argument")
        if ".." in Path(path).parts:
            raise StorageError("Invalid storage path", "storage/invalid-argument")

        if self.bucket is None:
            return self._upload_local(data, path)

        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            logger.info(f"Uploaded {len(data)} bytes to {path}")
            return blob.public_url
        except Exception as e:
            raise StorageError(f"Failed to upload file: {e}", "storage/unknown", e) from e

    def _upload_local(self, data: bytes, path: str) -> str:
        target = self.local_dir / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to upload file: {e}", "storage/unknown", e) from e
        logger.debug(f"Stored {len(data)} bytes at {target}")
        return f"{LOCAL_MEDIA_URL_PREFIX}/{path}"

    def delete(self, url: str) -> bool:
        """Remove a file previously returned by ``upload``.

        Returns False for URLs this storage did not produce.
        """
        if self.bucket is None:
            if not url.startswith(f"{LOCAL_MEDIA_URL_PREFIX}/"):
                return False
            path = url[len(LOCAL_MEDIA_URL_PREFIX) + 1:]
            if ".." in Path(path).parts:
                return False
            target = self.local_dir / path
            if not target.exists():
                return False
            target.unlink()
            return True

        prefix = f"https://storage.googleapis.com/{self.bucket.name}/"
        if not url.startswith(prefix):
            return False
        try:
            self.bucket.blob(url[len(prefix):]).delete()
        except Exception as e:
            raise StorageError(f"Failed to delete file: {e}", "storage/unknown", e) from e
        logger.info(f"Deleted {url}")
        return True
