"""Image hosting services package."""

from pocket_ledger.services.image.cloudinary_service import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
    is_hosted_url,
)

__all__ = [
    "CloudinaryImageService",
    "ImageUploadError",
    "InvalidImageError",
    "is_hosted_url",
]
