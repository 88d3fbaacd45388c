"""Test data factories using factory_boy pattern.

Usage:
    # In-memory instance
    entry = LedgerEntryFactory.build(amount=Decimal("100.00"))

    # Persist and commit so other sessions (API handlers) see the row
    txn = await BankTransactionFactory.create_async(db, reference="INV-001")
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TypeVar
from uuid import uuid4

import factory
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.models import BankTransaction, LedgerEntry, LedgerEntryType
from settlement_recon.services.store import LedgerEntrySnapshot, TransactionSnapshot

T = TypeVar("T")

BASE_DATE = datetime(2023, 11, 1, tzinfo=UTC)


class AsyncFactoryMixin:
    """Mixin providing async database persistence for factories."""

    @classmethod
    async def create_async(cls, db: AsyncSession, **kwargs) -> T:
        """Create and commit to the database.

        Commits rather than flushes: each test owns its own SQLite file and
        services under test open their own transactions.
        """
        instance = cls.build(**kwargs)
        db.add(instance)
        await db.commit()
        await db.refresh(instance)
        return instance


class BankTransactionFactory(factory.Factory, AsyncFactoryMixin):
    class Meta:
        model = BankTransaction

    id = factory.LazyFunction(uuid4)
    amount = Decimal("100.00")
    txn_date = BASE_DATE
    description = factory.Sequence(lambda n: f"Wire transfer {n}")
    reference = factory.Sequence(lambda n: f"BANK-{n:04d}")
    reconciled = False
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))


class LedgerEntryFactory(factory.Factory, AsyncFactoryMixin):
    class Meta:
        model = LedgerEntry

    id = factory.LazyFunction(uuid4)
    amount = Decimal("100.00")
    entry_date = BASE_DATE
    description = factory.Sequence(lambda n: f"Inv #{n:04d} (Net-30)")
    reference = factory.Sequence(lambda n: f"INV-{n:04d}")
    entry_type = LedgerEntryType.CREDIT
    payment_terms_days = None
    reconciled = False
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))


class TransactionSnapshotFactory(factory.Factory):
    class Meta:
        model = TransactionSnapshot

    id = factory.LazyFunction(uuid4)
    amount = Decimal("100.00")
    txn_date = BASE_DATE
    description = factory.Sequence(lambda n: f"Wire transfer {n}")
    reference = None


class LedgerEntrySnapshotFactory(factory.Factory):
    class Meta:
        model = LedgerEntrySnapshot

    id = factory.LazyFunction(uuid4)
    amount = Decimal("100.00")
    entry_date = BASE_DATE
    description = factory.Sequence(lambda n: f"Inv #{n:04d}")
    reference = None
    payment_terms_days = None
