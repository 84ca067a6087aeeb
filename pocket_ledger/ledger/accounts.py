"""
Account Manager

Opens, renames and closes accounts. Never writes amount, total_income or
total_expense: new accounts start at zero and from then on only the ledger
engine moves their aggregates.
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import LedgerSettings, get_settings
from pocket_ledger.ledger.errors import (
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
    StoreUnavailableError,
)
from pocket_ledger.ledger.images import host_image
from pocket_ledger.models.ledger import Account, LedgerResult
from pocket_ledger.services.image import CloudinaryImageService
from pocket_ledger.services.storage import (
    AccountStore,
    NotFoundError,
    StorageError,
    TransactionStore,
)


logger = structlog.get_logger(__name__)


class AccountManager:
    """
    Account lifecycle operations.

    Every method returns a LedgerResult, like the ledger engine.
    """

    def __init__(
        self,
        accounts: AccountStore,
        transactions: TransactionStore,
        image_service: Optional[CloudinaryImageService] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._accounts = accounts
        self._transactions = transactions
        self._image_service = image_service
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger

    async def open_account(
        self,
        name: str,
        user_id: Optional[str] = None,
        image: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """Create an account with zeroed aggregates."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            name = self._clean_name(name)
            image_url = await self._host(image, correlation_id)
            try:
                account = await self._accounts.create(name, user_id=user_id, image=image_url)
            except StorageError as e:
                raise StoreUnavailableError(f"Failed to create account: {e}") from e
        except LedgerError as e:
            return await self._rejected("open_account", e, None, correlation_id)

        await self._audit.log_account_opened(
            account_id=account.id,
            name=account.name,
            correlation_id=correlation_id,
        )
        return LedgerResult.ok(account, msg="Account created")

    async def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """Change an account's name and/or image."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            fields: dict[str, Any] = {}
            if name is not None:
                fields["name"] = self._clean_name(name)
            if image is not None:
                fields["image"] = await self._host(image, correlation_id)

            if not fields:
                account = await self._load(account_id)
                return LedgerResult.ok(account, msg="Nothing to update")

            try:
                account = await self._accounts.update_details(account_id, fields)
            except NotFoundError as e:
                raise RecordNotFoundError(f"Account not found: {account_id}") from e
            except StorageError as e:
                raise StoreUnavailableError(f"Failed to update account: {e}") from e
        except LedgerError as e:
            return await self._rejected("update_account", e, account_id, correlation_id)

        await self._audit.log_account_updated(
            account_id=account_id,
            changed_fields=sorted(fields),
            correlation_id=correlation_id,
        )
        return LedgerResult.ok(account, msg="Account updated")

    async def close_account(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """
        Delete an account and every transaction that references it.

        Transactions go first, so an interrupted close leaves an account with
        fewer transactions (fixable with reconcile) rather than orphaned
        transactions pointing at nothing.
        """
        correlation_id = correlation_id or create_correlation_id()
        deleted = 0
        try:
            await self._load(account_id)
            try:
                transactions = await self._transactions.list_for_account(account_id)
                for transaction in transactions:
                    await self._transactions.delete(transaction.id)
                    deleted += 1
                await self._accounts.delete(account_id)
            except NotFoundError as e:
                raise RecordNotFoundError(str(e)) from e
            except StorageError as e:
                raise StoreUnavailableError(
                    f"Failed to close account after deleting {deleted} transactions: {e}"
                ) from e
        except LedgerError as e:
            return await self._rejected("close_account", e, account_id, correlation_id)

        await self._audit.log_account_closed(
            account_id=account_id,
            transactions_deleted=deleted,
            correlation_id=correlation_id,
        )
        return LedgerResult.ok(msg="Account deleted")

    async def get_account(self, account_id: str) -> LedgerResult:
        try:
            account = await self._load(account_id)
        except LedgerError as e:
            return LedgerResult.fail(e.code, str(e))
        return LedgerResult.ok(account)

    async def list_accounts(self, user_id: str) -> LedgerResult:
        """Accounts of a user, oldest first."""
        try:
            accounts = await self._accounts.list_for_user(user_id)
        except StorageError as e:
            logger.error("list_accounts_failed", user_id=user_id, error=str(e))
            return LedgerResult.fail(StoreUnavailableError.code, f"Failed to list accounts: {e}")
        return LedgerResult.ok(accounts)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise LedgerValidationError("Account name is required")
        if len(name) > 100:
            raise LedgerValidationError("Account name must be at most 100 characters")
        return name

    async def _host(self, image: Optional[str], correlation_id: UUID) -> Optional[str]:
        return await host_image(
            self._image_service,
            self._audit,
            image,
            self._settings.account_image_folder,
            correlation_id,
        )

    async def _load(self, account_id: str) -> Account:
        try:
            return await self._accounts.get(account_id)
        except NotFoundError as e:
            raise RecordNotFoundError(f"Account not found: {account_id}") from e
        except StorageError as e:
            raise StoreUnavailableError(f"Failed to load account: {e}") from e

    async def _rejected(
        self,
        operation: str,
        error: LedgerError,
        account_id: Optional[str],
        correlation_id: UUID,
    ) -> LedgerResult:
        await self._audit.log_operation_rejected(
            operation=operation,
            error_code=error.code.value,
            error_message=str(error),
            entity_id=account_id,
            correlation_id=correlation_id,
            entity_type="account",
        )
        return LedgerResult.fail(error.code, str(error))
