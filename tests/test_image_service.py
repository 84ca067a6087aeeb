"""
Tests for the Cloudinary image service.

The Cloudinary SDK is patched; local images are real files written with Pillow.
"""

from unittest.mock import patch

import pytest
from PIL import Image

from pocket_ledger.config import CloudinarySettings, LedgerSettings
from pocket_ledger.services.image import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
    is_hosted_url,
)


@pytest.fixture
def image_service():
    return CloudinaryImageService(
        settings=CloudinarySettings(cloud_name="demo", api_key="key", api_secret="secret"),
        ledger_settings=LedgerSettings(),
    )


@pytest.fixture
def receipt_png(tmp_path):
    path = tmp_path / "receipt.png"
    Image.new("RGB", (8, 8), color="white").save(path)
    return path


class TestHostedUrls:
    """Tests for references that are already hosted."""

    def test_is_hosted_url(self):
        assert is_hosted_url("https://res.cloudinary.com/x.png")
        assert is_hosted_url("http://example.com/x.png")
        assert not is_hosted_url("file:///tmp/x.png")
        assert not is_hosted_url("/tmp/x.png")

    @pytest.mark.asyncio
    async def test_hosted_url_passes_through(self, image_service):
        with patch("cloudinary.uploader.upload") as upload:
            url = await image_service.upload("https://example.com/x.png", "transactions")

        assert url == "https://example.com/x.png"
        upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_image(self, image_service):
        assert await image_service.upload(None, "transactions") is None


class TestLocalUploads:
    """Tests for uploading local files."""

    @pytest.mark.asyncio
    async def test_uploads_into_folder(self, image_service, receipt_png):
        with patch("cloudinary.uploader.upload", return_value={"secure_url": "https://res.cloudinary.com/demo/r.png"}) as upload:
            url = await image_service.upload(str(receipt_png), "transactions")

        assert url == "https://res.cloudinary.com/demo/r.png"
        upload.assert_called_once_with(str(receipt_png), folder="transactions", resource_type="image")

    @pytest.mark.asyncio
    async def test_file_scheme_is_accepted(self, image_service, receipt_png):
        with patch("cloudinary.uploader.upload", return_value={"url": "http://res.cloudinary.com/demo/r.png"}):
            url = await image_service.upload(f"file://{receipt_png}", "accounts")

        assert url == "http://res.cloudinary.com/demo/r.png"

    @pytest.mark.asyncio
    async def test_missing_file(self, image_service, tmp_path):
        with pytest.raises(InvalidImageError):
            await image_service.upload(str(tmp_path / "nope.png"), "transactions")

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, image_service, tmp_path):
        path = tmp_path / "receipt.txt"
        path.write_text("not an image")

        with pytest.raises(InvalidImageError):
            await image_service.upload(str(path), "transactions")

    @pytest.mark.asyncio
    async def test_corrupt_image(self, image_service, tmp_path):
        path = tmp_path / "receipt.jpg"
        path.write_bytes(b"definitely not a jpeg")

        with pytest.raises(InvalidImageError):
            await image_service.upload(str(path), "transactions")

    @pytest.mark.asyncio
    async def test_upload_failure(self, image_service, receipt_png):
        with patch("cloudinary.uploader.upload", side_effect=RuntimeError("network down")):
            with pytest.raises(ImageUploadError) as exc_info:
                await image_service.upload(str(receipt_png), "transactions")

        assert not isinstance(exc_info.value, InvalidImageError)

    @pytest.mark.asyncio
    async def test_missing_url_in_response(self, image_service, receipt_png):
        with patch("cloudinary.uploader.upload", return_value={}):
            with pytest.raises(ImageUploadError):
                await image_service.upload(str(receipt_png), "transactions")
