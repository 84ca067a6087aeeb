"""Services package."""

from pocket_ledger.services.image import (
    CloudinaryImageService,
    ImageUploadError,
    InvalidImageError,
)
from pocket_ledger.services.storage import (
    AccountStore,
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
    StoreConnectionError,
    TransactionStore,
)

__all__ = [
    # Image services
    "CloudinaryImageService",
    "ImageUploadError",
    "InvalidImageError",
    # Storage services
    "AccountStore",
    "AuditStorageInterface",
    "ConflictError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StorageError",
    "StoreConnectionError",
    "TransactionStore",
]
