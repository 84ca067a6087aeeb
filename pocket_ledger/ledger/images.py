"""Image hosting glue shared by the ledger engine and the account manager."""

from typing import Optional
from uuid import UUID

from pocket_ledger.audit import AuditLogger
from pocket_ledger.ledger.errors import LedgerValidationError, StoreUnavailableError
from pocket_ledger.services.image import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
    is_hosted_url,
)


async def host_image(
    image_service: Optional[CloudinaryImageService],
    audit_logger: AuditLogger,
    file_ref: Optional[str],
    folder: str,
    correlation_id: UUID,
) -> Optional[str]:
    """
    Resolve an image reference to a hosted URL.

    Hosted URLs and empty references pass through without touching the
    hosting service; only new local files are uploaded.
    """
    if not file_ref or is_hosted_url(file_ref):
        return file_ref

    if image_service is None:
        raise LedgerValidationError("An image was attached but no image hosting is configured")

    try:
        url = await image_service.upload(file_ref, folder)
    except InvalidImageError as e:
        raise LedgerValidationError(str(e)) from e
    except ImageUploadError as e:
        await audit_logger.log_external_service_error(
            service="cloudinary",
            error_message=str(e),
            correlation_id=correlation_id,
        )
        raise StoreUnavailableError(f"Failed to upload image: {e}") from e

    await audit_logger.log_image_uploaded(
        folder=folder,
        url=url,
        correlation_id=correlation_id,
    )
    return url
