"""Persistence capability used by ingestion and matching.

The matching engine and the deduplicator only see the `LedgerStore` protocol
and plain snapshots, never ORM instances. `SqlAlchemyLedgerStore` is the
production implementation on an `AsyncSession`.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.models import (
    BankTransaction,
    LedgerEntry,
    ReconciliationRecord,
    ReconciliationStatus,
)


class StorageError(Exception):
    """Raised when a persistence read or write fails."""

    pass


class ConcurrentMatchError(StorageError):
    """Raised when a side of a match was reconciled by someone else first.

    Exactly one of bank_transaction_id / ledger_entry_id names the rejected side.
    """

    def __init__(
        self,
        message: str,
        *,
        bank_transaction_id: UUID | None = None,
        ledger_entry_id: UUID | None = None,
    ) -> None:
        super().__init__(message)
        self.bank_transaction_id = bank_transaction_id
        self.ledger_entry_id = ledger_entry_id


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime (SQLite hands back naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


@dataclass(frozen=True)
class TransactionSnapshot:
    id: UUID
    amount: Decimal
    txn_date: datetime
    description: str
    reference: str | None


@dataclass(frozen=True)
class LedgerEntrySnapshot:
    id: UUID
    amount: Decimal
    entry_date: datetime
    description: str
    reference: str | None
    payment_terms_days: int | None = None


@dataclass(frozen=True)
class NewTransaction:
    """A deduplicated statement row ready to insert."""

    amount: Decimal
    txn_date: datetime
    description: str
    reference: str | None


@dataclass(frozen=True)
class ReconciliationDraft:
    """Everything the atomic write needs to record one match."""

    bank_transaction_id: UUID
    ledger_entry_id: UUID
    status: ReconciliationStatus
    confidence_score: int
    notes: str


class LedgerStore(Protocol):
    async def load_unreconciled_transactions(self) -> list[TransactionSnapshot]: ...

    async def load_unreconciled_ledger_entries(self) -> list[LedgerEntrySnapshot]: ...

    async def load_transactions_in_date_range(self, start: date, end: date) -> list[TransactionSnapshot]: ...

    async def insert_transactions_batch(self, rows: Sequence[NewTransaction]) -> int: ...

    async def atomic_write(self, draft: ReconciliationDraft) -> UUID: ...


def _transaction_snapshot(txn: BankTransaction) -> TransactionSnapshot:
    return TransactionSnapshot(
        id=txn.id,
        amount=txn.amount,
        txn_date=as_utc(txn.txn_date),
        description=txn.description,
        reference=txn.reference,
    )


def _ledger_snapshot(entry: LedgerEntry) -> LedgerEntrySnapshot:
    return LedgerEntrySnapshot(
        id=entry.id,
        amount=entry.amount,
        entry_date=as_utc(entry.entry_date),
        description=entry.description,
        reference=entry.reference,
        payment_terms_days=entry.payment_terms_days,
    )


class SqlAlchemyLedgerStore:
    """LedgerStore backed by an AsyncSession. Each write commits on its own."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_unreconciled_transactions(self) -> list[TransactionSnapshot]:
        # Most recent first
        query = (
            select(BankTransaction)
            .where(BankTransaction.reconciled.is_(False))
            .order_by(BankTransaction.txn_date.desc(), BankTransaction.created_at, BankTransaction.id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load unreconciled transactions: {exc}") from exc
        return [_transaction_snapshot(txn) for txn in result.scalars().all()]

    async def load_unreconciled_ledger_entries(self) -> list[LedgerEntrySnapshot]:
        # Insertion order is the first-fit scan order
        query = (
            select(LedgerEntry)
            .where(LedgerEntry.reconciled.is_(False))
            .order_by(LedgerEntry.created_at, LedgerEntry.id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load unreconciled ledger entries: {exc}") from exc
        return [_ledger_snapshot(entry) for entry in result.scalars().all()]

    async def load_transactions_in_date_range(self, start: date, end: date) -> list[TransactionSnapshot]:
        """All transactions whose calendar day falls in [start, end]."""
        query = select(BankTransaction).where(
            BankTransaction.txn_date >= start_of_day(start),
            BankTransaction.txn_date < start_of_day(end + timedelta(days=1)),
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load transactions for {start}..{end}: {exc}") from exc
        return [_transaction_snapshot(txn) for txn in result.scalars().all()]

    async def insert_transactions_batch(self, rows: Sequence[NewTransaction]) -> int:
        if not rows:
            return 0
        self.db.add_all(
            [
                BankTransaction(
                    amount=row.amount,
                    txn_date=as_utc(row.txn_date),
                    description=row.description,
                    reference=row.reference,
                    reconciled=False,
                )
                for row in rows
            ]
        )
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StorageError(f"Batch insert of {len(rows)} transactions failed: {exc}") from exc
        return len(rows)

    async def atomic_write(self, draft: ReconciliationDraft) -> UUID:
        """Create the record and flip both reconciled flags in one transaction."""
        try:
            record_id = await self._insert_record(draft)
            await self._flip_transaction(draft.bank_transaction_id)
            await self._flip_ledger_entry(draft.ledger_entry_id)
            await self.db.commit()
        except StorageError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StorageError(
                f"Atomic match write failed for transaction {draft.bank_transaction_id}: {exc}"
            ) from exc
        return record_id

    async def _insert_record(self, draft: ReconciliationDraft) -> UUID:
        record = ReconciliationRecord(
            bank_transaction_id=draft.bank_transaction_id,
            ledger_entry_id=draft.ledger_entry_id,
            status=draft.status,
            confidence_score=draft.confidence_score,
            notes=draft.notes,
        )
        self.db.add(record)
        await self.db.flush()
        return record.id

    async def _flip_transaction(self, txn_id: UUID) -> None:
        result = await self.db.execute(
            update(BankTransaction)
            .where(BankTransaction.id == txn_id, BankTransaction.reconciled.is_(False))
            .values(reconciled=True)
        )
        if result.rowcount != 1:
            raise ConcurrentMatchError(
                f"Bank transaction {txn_id} is already reconciled", bank_transaction_id=txn_id
            )

    async def _flip_ledger_entry(self, entry_id: UUID) -> None:
        result = await self.db.execute(
            update(LedgerEntry)
            .where(LedgerEntry.id == entry_id, LedgerEntry.reconciled.is_(False))
            .values(reconciled=True)
        )
        if result.rowcount != 1:
            raise ConcurrentMatchError(f"Ledger entry {entry_id} is already reconciled", ledger_entry_id=entry_id)
