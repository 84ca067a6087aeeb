"""
Image Hosting Service using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure
2. Simple API
3. Free tier sufficient for personal use

This service handles:
1. Recognising references that are already hosted (passed through untouched)
2. Checking that a local file really is a readable image
3. Uploading it into a folder and returning the durable URL

The ledger treats the returned URL as an opaque string.
"""

from pathlib import Path
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from pocket_ledger.config import CloudinarySettings, LedgerSettings, get_settings


class ImageUploadError(Exception):
    """Base exception for image hosting errors."""
    pass


class InvalidImageError(ImageUploadError):
    """The local file is missing, has an unsupported format, or is not an image."""
    pass


def is_hosted_url(file_ref: str) -> bool:
    """True when the reference already points at a hosted image."""
    return file_ref.startswith(("http://", "https://"))


class CloudinaryImageService:
    """
    Service for hosting receipt and account images on Cloudinary.

    Flow:
    1. Receive a file reference (hosted URL or local path)
    2. Hosted URL: return it unchanged
    3. Local path: validate, upload into the requested folder
    4. Return the secure URL or raise ImageUploadError
    """

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        ledger_settings: Optional[LedgerSettings] = None,
    ):
        self._settings = settings or get_settings().cloudinary
        self._ledger_settings = ledger_settings or get_settings().ledger
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _validate_local_file(self, file_ref: str) -> Path:
        """
        Make sure a local reference is an uploadable image.

        Raises:
            InvalidImageError: If the file is missing, has an unsupported
                extension, or cannot be decoded as an image
        """
        path = Path(file_ref.removeprefix("file://"))
        if not path.is_file():
            raise InvalidImageError(f"Image file not found: {file_ref}")

        extension = path.suffix.lstrip(".").lower()
        allowed = self._ledger_settings.supported_formats_list
        if extension not in allowed:
            raise InvalidImageError(
                f"Unsupported image format: {extension or 'none'}. Allowed: {', '.join(allowed)}"
            )

        try:
            with Image.open(path) as img:
                img.verify()
        except (UnidentifiedImageError, OSError) as e:
            raise InvalidImageError(f"Could not read image {path.name}: {e}")

        return path

    @retry(
        retry=retry_if_exception_type(cloudinary.exceptions.Error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload_file(self, path: Path, folder: str) -> dict:
        return cloudinary.uploader.upload(
            str(path),
            folder=folder,
            resource_type="image",
        )

    async def upload(self, file_ref: Optional[str], folder: str) -> Optional[str]:
        """
        Host an image and return its URL.

        Args:
            file_ref: Hosted URL, local path, or None
            folder: Cloudinary folder (e.g. 'transactions', 'accounts')

        Returns:
            The hosted URL, or None when no image was given

        Raises:
            InvalidImageError: If the local file is unusable
            ImageUploadError: If Cloudinary rejects or fails the upload
        """
        if not file_ref:
            return None

        if is_hosted_url(file_ref):
            return file_ref

        path = self._validate_local_file(file_ref)
        self._configure()

        try:
            result = self._upload_file(path, folder)
        except cloudinary.exceptions.Error as e:
            raise ImageUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise ImageUploadError(f"Failed to upload image: {e}")

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise ImageUploadError("No URL returned from Cloudinary")
        return url
