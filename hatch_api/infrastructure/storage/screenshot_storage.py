"""
Payment Screenshot Storage

Uploads payment screenshots to a Supabase Storage bucket. The object path
returned by ``upload`` is stored on the submission as an opaque reference.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

from fastapi.concurrency import run_in_threadpool
from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from hatch_api.config.settings import settings
from hatch_api.infrastructure.exceptions import ConfigurationError, StorageError, ValidationError


logger = logging.getLogger(__name__)


ALLOWED_CONTENT_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}


class ScreenshotStorage:
    """
    Thin wrapper over the storage bucket for payment screenshots.

    The Supabase client is created lazily with the service role key;
    tests pass a mock client instead.
    """

    def __init__(self, client: Optional[Client] = None, bucket: Optional[str] = None):
        self._client = client
        self._bucket = bucket or settings.payment_screenshot_bucket

    @property
    def client(self) -> Client:
        if self._client is None:
            if not settings.supabase_service_role_key:
                raise ConfigurationError(
                    "Supabase storage is not configured",
                    missing_keys=["SUPABASE_SERVICE_ROLE_KEY"],
                )
            options = ClientOptions(storage_client_timeout=30)
            self._client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key,
                options,
            )
        return self._client

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def max_bytes(self) -> int:
        return settings.max_screenshot_bytes

    def check_size(self, size: Optional[int]) -> None:
        """
        Reject a screenshot by size, before or after reading it.

        Raises:
            ValidationError: larger than MAX_SCREENSHOT_BYTES
        """
        if size is not None and size > self.max_bytes:
            raise ValidationError(
                "Screenshot is too large",
                details={"field": "file", "max_bytes": self.max_bytes},
            )

    def validate(self, content: bytes, content_type: Optional[str]) -> str:
        """
        Check size and type; return the file extension to use.

        Raises:
            ValidationError: empty, too large or not an image
        """
        if not content:
            raise ValidationError("Screenshot file is empty", details={"field": "file"})
        self.check_size(len(content))
        extension = ALLOWED_CONTENT_TYPES.get((content_type or "").lower())
        if extension is None:
            raise ValidationError(
                "Screenshot must be a PNG, JPEG or WebP image",
                details={"field": "file", "content_type": content_type},
            )
        return extension

    async def upload(self, user_id: UUID, content: bytes, content_type: Optional[str]) -> str:
        """
        Store a screenshot under the user's folder.

        Returns:
            Object path inside the bucket

        Raises:
            ValidationError: rejected by ``validate``
            ConfigurationError: storage credentials missing
            StorageError: the upload itself failed
        """
        extension = self.validate(content, content_type)
        path = f"{user_id}/{uuid4().hex}{extension}"
        bucket = self.client.storage.from_(self._bucket)

        try:
            await run_in_threadpool(
                bucket.upload,
                path,
                content,
                {"content-type": content_type},
            )
        except Exception as e:
            logger.error(f"[STORAGE] Upload to {self._bucket}/{path} failed: {e}")
            raise StorageError(
                "Failed to store payment screenshot",
                bucket=self._bucket,
                original_error=e,
            ) from e

        logger.info(f"[STORAGE] Stored screenshot {path} ({len(content)} bytes)")
        return path


_storage: Optional[ScreenshotStorage] = None


def get_screenshot_storage() -> ScreenshotStorage:
    """FastAPI dependency returning the process-wide storage wrapper."""
    global _storage
    if _storage is None:
        _storage = ScreenshotStorage()
    return _storage
