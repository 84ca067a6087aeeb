"""
Component wiring for Pocket Ledger

Builds the record store, audit logger, image hosting, ledger engine, account
manager and statistics reporter from settings, so callers (a UI, a script, a
test) get a consistent set of collaborators sharing one store.

DESIGN DECISION: Optional services degrade instead of failing startup.
- Google Sheets not configured: fall back to the in-memory store.
- Cloudinary not configured: no image hosting; attaching a local image is
  then rejected as a validation error, hosted URLs still pass through.
"""

from typing import Optional

import structlog

from pocket_ledger.audit import AuditLogger
from pocket_ledger.config import LedgerSettings, get_settings
from pocket_ledger.ledger import AccountManager, LedgerEngine
from pocket_ledger.reports import StatsReporter
from pocket_ledger.services.image import CloudinaryImageService
from pocket_ledger.services.storage import (
    AccountStore,
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
    TransactionStore,
)


logger = structlog.get_logger(__name__)


def _create_storage(
    backend: str,
) -> tuple[RecordStoreInterface, AuditStorageInterface, Optional[GoogleSheetsClient]]:
    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            return (
                GoogleSheetsRecordStore(sheets_client),
                GoogleSheetsAuditStorage(sheets_client),
                sheets_client,
            )
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("sheets_storage_unavailable", error=str(e))

    return InMemoryRecordStore(), InMemoryAuditStorage(), None


def _create_image_service(ledger_settings: LedgerSettings) -> Optional[CloudinaryImageService]:
    try:
        return CloudinaryImageService(
            settings=get_settings().cloudinary,
            ledger_settings=ledger_settings,
        )
    except Exception as e:
        logger.warning("image_hosting_unavailable", error=str(e))
        return None


def create_app_components(
    store: Optional[RecordStoreInterface] = None,
    image_service: Optional[CloudinaryImageService] = None,
    use_image_hosting: bool = True,
) -> tuple[LedgerEngine, AccountManager, StatsReporter, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        store: Record store to use. If None, the backend named by
               APP settings (storage_backend) is created.
        image_service: Image hosting to use. If None and use_image_hosting
                       is set, Cloudinary is configured from settings.
        use_image_hosting: Set to False to run without image hosting.

    Returns:
        (ledger_engine, account_manager, stats_reporter, sheets_client)
    """
    settings = get_settings()
    ledger_settings = settings.ledger

    sheets_client = None
    if store is None:
        store, audit_storage, sheets_client = _create_storage(settings.app.storage_backend)
        audit_logger = AuditLogger(audit_storage)
    else:
        audit_logger = AuditLogger()  # Local-only logging

    if image_service is None and use_image_hosting:
        image_service = _create_image_service(ledger_settings)

    accounts = AccountStore(store)
    transactions = TransactionStore(store)

    engine = LedgerEngine(
        accounts,
        transactions,
        image_service=image_service,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )
    account_manager = AccountManager(
        accounts,
        transactions,
        image_service=image_service,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )
    stats_reporter = StatsReporter(transactions)

    return engine, account_manager, stats_reporter, sheets_client
