"""
Unit tests for payment screenshot storage (Supabase client mocked).
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from hatch_api.infrastructure.exceptions import ConfigurationError, StorageError, ValidationError
from hatch_api.infrastructure.storage.screenshot_storage import ScreenshotStorage


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def supabase_client():
    return MagicMock()


@pytest.fixture
def storage(supabase_client):
    return ScreenshotStorage(client=supabase_client, bucket="test-bucket")


class TestValidate:

    def test_png_accepted(self, storage):
        assert storage.validate(PNG_BYTES, "image/png") == ".png"

    def test_jpeg_extension(self, storage):
        assert storage.validate(PNG_BYTES, "IMAGE/JPEG") == ".jpg"

    def test_empty_rejected(self, storage):
        with pytest.raises(ValidationError):
            storage.validate(b"", "image/png")

    def test_non_image_rejected(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            storage.validate(PNG_BYTES, "application/pdf")
        assert exc_info.value.details["content_type"] == "application/pdf"

    def test_too_large_rejected(self, storage, monkeypatch):
        from hatch_api.config.settings import settings

        monkeypatch.setattr(settings, "max_screenshot_bytes", 10)
        with pytest.raises(ValidationError):
            storage.validate(PNG_BYTES, "image/png")

    def test_declared_size_checked_before_reading(self, storage, monkeypatch):
        from hatch_api.config.settings import settings

        monkeypatch.setattr(settings, "max_screenshot_bytes", 10)
        storage.check_size(None)
        storage.check_size(10)
        with pytest.raises(ValidationError) as exc_info:
            storage.check_size(11)
        assert exc_info.value.details["max_bytes"] == 10


class TestUpload:

    async def test_upload_returns_path_in_user_folder(self, storage, supabase_client):
        user_id = uuid4()
        path = await storage.upload(user_id, PNG_BYTES, "image/png")

        assert path.startswith(f"{user_id}/")
        assert path.endswith(".png")
        supabase_client.storage.from_.assert_called_once_with("test-bucket")
        bucket = supabase_client.storage.from_.return_value
        args = bucket.upload.call_args.args
        assert args[0] == path
        assert args[1] == PNG_BYTES

    async def test_invalid_file_never_uploaded(self, storage, supabase_client):
        with pytest.raises(ValidationError):
            await storage.upload(uuid4(), b"", "image/png")
        supabase_client.storage.from_.assert_not_called()

    async def test_upload_failure_wrapped(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.upload.side_effect = RuntimeError("bucket missing")
        with pytest.raises(StorageError) as exc_info:
            await storage.upload(uuid4(), PNG_BYTES, "image/png")
        assert exc_info.value.details["bucket"] == "test-bucket"

    async def test_missing_credentials_reported_as_configuration(self, monkeypatch):
        from hatch_api.config.settings import settings

        monkeypatch.setattr(settings, "supabase_service_role_key", "")
        storage = ScreenshotStorage(bucket="test-bucket")

        with pytest.raises(ConfigurationError) as exc_info:
            await storage.upload(uuid4(), PNG_BYTES, "image/png")
        assert exc_info.value.details["missing_keys"] == ["SUPABASE_SERVICE_ROLE_KEY"]
