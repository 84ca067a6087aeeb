"""
Ledger Engine

The only component allowed to change an account's amount, total_income and
total_expense. It keeps those cached aggregates equal to what the account's
transactions imply, using nothing but sequential single-record store calls.

DESIGN DECISIONS:
1. Every account write is a versioned read-modify-write, retried on conflict.
   Two callers adjusting the same account cannot silently overwrite each
   other.
2. Account writes happen before the transaction write. A failed funds check
   therefore never leaves an orphan transaction behind.
3. When a later step fails, earlier account writes are reverted
   (compensation). If the revert itself fails it is audited at CRITICAL and
   reconcile() repairs the account from its transactions.
4. Edits are revert-then-reapply: accounts store sums, not contributors.
5. Operations are shielded from cancellation: once started they finish, even
   if the caller goes away.

Nothing but cancellation escapes the public methods; every failure comes
back as a LedgerResult.
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import LedgerSettings, get_settings
from pocket_ledger.ledger.effects import (
    apply_effect,
    effect_of,
    sum_effects,
    transaction_effect,
)
from pocket_ledger.ledger.errors import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
    StoreUnavailableError,
)
from pocket_ledger.ledger.images import host_image
from pocket_ledger.models.ledger import (
    Account,
    ErrorCode,
    LedgerEffect,
    LedgerResult,
    Transaction,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
)
from pocket_ledger.services.image import CloudinaryImageService
from pocket_ledger.services.storage import (
    AccountStore,
    ConflictError,
    NotFoundError,
    StorageError,
    TransactionStore,
)


INSUFFICIENT_FUNDS_MSG = "Insufficient funds in account!"
CORRUPT_BALANCE_MSG = "You cannot delete this transaction: it would corrupt the account balance"


def parse_payload(model: type[BaseModel], data: Union[BaseModel, dict]) -> Any:
    """Validate caller input, turning pydantic errors into LedgerValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise LedgerValidationError(f"Invalid transaction data: {problems}") from e


@contextmanager
def storage_errors(what: str):
    """Translate store failures into the ledger taxonomy (conflicts pass through)."""
    try:
        yield
    except ConflictError:
        raise
    except NotFoundError as e:
        raise RecordNotFoundError(f"{what} not found") from e
    except StorageError as e:
        raise StoreUnavailableError(f"{what}: {e}") from e


class LedgerEngine:
    """
    Transaction-level operations that keep account aggregates consistent.

    Usage:
        engine = LedgerEngine(AccountStore(store), TransactionStore(store))
        result = await engine.record({"type": "expense", "amount": "30", "account_id": acct})
        if not result.success:
            show(result.msg)
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
        self._inflight: set[asyncio.Task] = set()

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def record(
        self,
        data: Union[TransactionInput, dict],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """
        Record a new transaction and apply its effect to the account.

        Result data: the created Transaction.
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._shielded(
            "record",
            self._record(data, correlation_id),
            correlation_id,
        )

    async def amend(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """
        Edit a transaction, moving its contribution if type, amount or
        account changed.

        Result data: the updated Transaction.
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._shielded(
            "amend",
            self._amend(transaction_id, changes, correlation_id),
            correlation_id,
            entity_id=transaction_id,
        )

    async def remove(
        self,
        transaction_id: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """
        Delete a transaction and revert its effect.

        account_id must match the transaction's stored account.
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._shielded(
            "remove",
            self._remove(transaction_id, account_id, correlation_id),
            correlation_id,
            entity_id=transaction_id,
        )

    async def reconcile(
        self,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerResult:
        """
        Recompute an account's aggregates from its transactions.

        Maintenance operation for accounts left inconsistent by a failed
        compensation. Result data: the corrected Account.
        """
        correlation_id = correlation_id or create_correlation_id()
        return await self._shielded(
            "reconcile",
            self._reconcile(account_id, correlation_id),
            correlation_id,
            entity_id=account_id,
        )

    # =========================================================================
    # BOUNDARY
    # =========================================================================

    async def _shielded(
        self,
        operation: str,
        work: Awaitable[Any],
        correlation_id: UUID,
        entity_id: Optional[str] = None,
    ) -> LedgerResult:
        """Run an operation to completion even if the caller is cancelled."""
        task = asyncio.ensure_future(self._run(operation, work, correlation_id, entity_id))
        # Held until done so an abandoned operation is not garbage collected
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def _run(
        self,
        operation: str,
        work: Awaitable[Any],
        correlation_id: UUID,
        entity_id: Optional[str],
    ) -> LedgerResult:
        try:
            outcome = await work
            if isinstance(outcome, LedgerResult):
                return outcome
            return LedgerResult.ok(outcome)
        except LedgerError as e:
            await self._audit.log_operation_rejected(
                operation=operation,
                error_code=e.code.value,
                error_message=str(e),
                entity_id=entity_id,
                correlation_id=correlation_id,
                entity_type="account" if operation == "reconcile" else "transaction",
            )
            return LedgerResult.fail(e.code, str(e))
        except Exception as e:
            await self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
            return LedgerResult.fail(ErrorCode.STORE_UNAVAILABLE, f"{operation} failed: {e}")

    # =========================================================================
    # OPERATION BODIES
    # =========================================================================

    async def _record(self, data: Union[TransactionInput, dict], correlation_id: UUID) -> Transaction:
        payload: TransactionInput = parse_payload(TransactionInput, data)

        try:
            await self._load_account(payload.account_id)
        except RecordNotFoundError as e:
            raise LedgerValidationError(f"Account not found: {payload.account_id}") from e

        receipt = await host_image(
            self._image_service,
            self._audit,
            payload.receipt_image,
            self._settings.receipt_folder,
            correlation_id,
        )
        payload = payload.model_copy(update={"receipt_image": receipt})

        effect = effect_of(payload.type, payload.amount)
        await self._adjust(
            payload.account_id,
            effect,
            correlation_id,
            on_negative=self._funds_guard(payload.type),
        )

        try:
            transaction = await self._transactions.insert(payload)
        except StorageError as e:
            await self._compensate(payload.account_id, -effect, "transaction insert failed", correlation_id)
            raise StoreUnavailableError(f"Failed to save transaction: {e}") from e

        await self._audit.log_transaction_recorded(
            transaction_id=transaction.id,
            account_id=transaction.account_id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            correlation_id=correlation_id,
        )
        return transaction

    async def _amend(
        self,
        transaction_id: str,
        changes: Union[TransactionUpdate, dict],
        correlation_id: UUID,
    ) -> Transaction:
        update: TransactionUpdate = parse_payload(TransactionUpdate, changes)
        fields = update.changes()

        old = await self._load_transaction(transaction_id)
        origin = await self._load_account(old.account_id)
        # Validate the merged record before touching any account
        new: Transaction = parse_payload(Transaction, {**old.model_dump(), **fields})
        ledger_changed = new.ledger_key != old.ledger_key

        if "receipt_image" in fields:
            fields["receipt_image"] = await host_image(
                self._image_service,
                self._audit,
                fields["receipt_image"],
                self._settings.receipt_folder,
                correlation_id,
            )

        applied: list[tuple[str, LedgerEffect]] = []
        if ledger_changed:
            applied = await self._move_contribution(old, new, origin, correlation_id)

        try:
            updated = await self._transactions.update(transaction_id, fields)
        except StorageError as e:
            for account_id, effect in reversed(applied):
                await self._compensate(account_id, -effect, "transaction update failed", correlation_id)
            if isinstance(e, NotFoundError):
                raise RecordNotFoundError(f"Transaction not found: {transaction_id}") from e
            raise StoreUnavailableError(f"Failed to update transaction: {e}") from e

        await self._audit.log_transaction_amended(
            transaction_id=transaction_id,
            changed_fields=sorted(fields),
            ledger_changed=ledger_changed,
            correlation_id=correlation_id,
        )
        return updated

    async def _move_contribution(
        self,
        old: Transaction,
        new: Transaction,
        origin: Account,
        correlation_id: UUID,
    ) -> list[tuple[str, LedgerEffect]]:
        """
        Revert the old contribution and apply the new one.

        Returns the (account_id, effect) pairs written, in order, so a later
        failure can undo them.
        """
        old_effect = transaction_effect(old)
        new_effect = transaction_effect(new)
        guard = self._funds_guard(new.type)

        if new.account_id == origin.id:
            # One combined delta; the basis is the reverted origin
            combined = new_effect + (-old_effect)
            await self._adjust(origin.id, combined, correlation_id, on_negative=guard)
            return [(origin.id, combined)]

        destination = await self._load_account(new.account_id)
        if guard is not None and apply_effect(destination, new_effect).amount < 0:
            raise InsufficientFundsError(INSUFFICIENT_FUNDS_MSG)

        await self._adjust(origin.id, -old_effect, correlation_id)
        try:
            await self._adjust(destination.id, new_effect, correlation_id, on_negative=guard)
        except LedgerError:
            await self._compensate(origin.id, old_effect, "destination update failed", correlation_id)
            raise
        return [(origin.id, -old_effect), (destination.id, new_effect)]

    async def _remove(self, transaction_id: str, account_id: str, correlation_id: UUID) -> None:
        transaction = await self._load_transaction(transaction_id)
        if transaction.account_id != account_id:
            raise RecordNotFoundError(
                f"Transaction {transaction_id} not found in account {account_id}"
            )

        revert = -transaction_effect(transaction)
        # Reverting an expense raises the balance, so this only trips on
        # accounts whose stored balance is already wrong
        guard = InvalidStateError if transaction.type == TransactionType.EXPENSE else None
        await self._adjust(
            account_id,
            revert,
            correlation_id,
            on_negative=guard,
            message=CORRUPT_BALANCE_MSG,
        )

        try:
            await self._transactions.delete(transaction_id)
        except StorageError as e:
            await self._compensate(account_id, -revert, "transaction delete failed", correlation_id)
            if isinstance(e, NotFoundError):
                raise RecordNotFoundError(f"Transaction not found: {transaction_id}") from e
            raise StoreUnavailableError(f"Failed to delete transaction: {e}") from e

        await self._audit.log_transaction_removed(
            transaction_id=transaction_id,
            account_id=account_id,
            correlation_id=correlation_id,
        )
        return None

    async def _reconcile(self, account_id: str, correlation_id: UUID) -> LedgerResult:
        try:
            async for attempt in self._conflict_retrying():
                with attempt:
                    account = await self._load_account(account_id)
                    with storage_errors("Transactions"):
                        transactions = await self._transactions.list_for_account(account_id)
                    total = sum_effects(transactions)
                    corrected = account.model_copy(update={
                        "amount": total.amount_delta,
                        "total_income": total.income_delta,
                        "total_expense": total.expense_delta,
                    })
                    with storage_errors(f"Account {account_id}"):
                        saved = await self._accounts.save_aggregates(corrected)
        except ConflictError as e:
            raise StoreUnavailableError(f"Account {account_id} is being modified concurrently: {e}") from e

        await self._audit.log_account_reconciled(
            account_id=account_id,
            before=account.aggregates,
            after=saved.aggregates,
            transaction_count=len(transactions),
            correlation_id=correlation_id,
        )

        drift = account.amount - saved.amount
        if drift or account.aggregates != saved.aggregates:
            msg = f"Account corrected (balance drift {drift})"
        else:
            msg = "Account already consistent"
        return LedgerResult.ok(saved, msg=msg)

    # =========================================================================
    # ACCOUNT ADJUSTMENT
    # =========================================================================

    @staticmethod
    def _funds_guard(transaction_type: TransactionType) -> Optional[type[LedgerError]]:
        """Expenses may not overdraw the account they are applied to."""
        if transaction_type == TransactionType.EXPENSE:
            return InsufficientFundsError
        return None

    def _conflict_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(ConflictError),
            stop=stop_after_attempt(self._settings.max_conflict_retries),
            wait=wait_exponential(multiplier=self._settings.conflict_backoff_seconds, max=1),
            reraise=True,
        )

    async def _adjust(
        self,
        account_id: str,
        effect: LedgerEffect,
        correlation_id: UUID,
        on_negative: Optional[type[LedgerError]] = None,
        message: str = INSUFFICIENT_FUNDS_MSG,
    ) -> Account:
        """
        Apply an effect to an account with a versioned read-modify-write.

        Raises on_negative(message) instead of writing when set and the
        resulting balance would be below zero.
        """
        try:
            async for attempt in self._conflict_retrying():
                with attempt:
                    account = await self._load_account(account_id)
                    adjusted = apply_effect(account, effect)
                    if on_negative is not None and adjusted.amount < 0:
                        raise on_negative(message)
                    with storage_errors(f"Account {account_id}"):
                        saved = await self._accounts.save_aggregates(adjusted)
        except ConflictError as e:
            raise StoreUnavailableError(f"Account {account_id} is being modified concurrently: {e}") from e

        await self._audit.log_account_adjusted(
            account_id=account_id,
            before=account.aggregates,
            after=saved.aggregates,
            version=saved.version,
            correlation_id=correlation_id,
        )
        return saved

    async def _compensate(
        self,
        account_id: str,
        effect: LedgerEffect,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """
        Undo an account write after a later step failed.

        Never raises: the caller re-raises the original failure. A failed
        undo is audited so the account can be reconciled.
        """
        if not self._settings.compensate_on_failure:
            await self._audit.log_compensation(
                account_id, reason, correlation_id, error_message="compensation disabled"
            )
            return

        try:
            await self._adjust(account_id, effect, correlation_id)
        except LedgerError as e:
            await self._audit.log_compensation(account_id, reason, correlation_id, error_message=str(e))
        else:
            await self._audit.log_compensation(account_id, reason, correlation_id)

    # =========================================================================
    # LOADERS
    # =========================================================================

    async def _load_account(self, account_id: str) -> Account:
        with storage_errors(f"Account {account_id}"):
            return await self._accounts.get(account_id)

    async def _load_transaction(self, transaction_id: str) -> Transaction:
        with storage_errors(f"Transaction {transaction_id}"):
            return await self._transactions.get(transaction_id)
