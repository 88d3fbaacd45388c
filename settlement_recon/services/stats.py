"""Aggregate reconciliation statistics."""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.models import BankTransaction, LedgerEntry


@dataclass(frozen=True)
class ReconciliationStats:
    total_transactions: int
    reconciled_count: int
    unreconciled_count: int
    ledger_entry_count: int
    # Sum of unreconciled ledger amounts
    outstanding_exposure: Decimal


async def get_reconciliation_stats(db: AsyncSession) -> ReconciliationStats:
    """Counts for the dashboard header, computed in the database."""
    total = (await db.execute(select(func.count(BankTransaction.id)))).scalar_one()
    reconciled = (
        await db.execute(select(func.count(BankTransaction.id)).where(BankTransaction.reconciled.is_(True)))
    ).scalar_one()
    ledger_count = (await db.execute(select(func.count(LedgerEntry.id)))).scalar_one()
    exposure = (
        await db.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), Decimal("0"))).where(
                LedgerEntry.reconciled.is_(False)
            )
        )
    ).scalar_one()

    return ReconciliationStats(
        total_transactions=total,
        reconciled_count=reconciled,
        unreconciled_count=total - reconciled,
        ledger_entry_count=ledger_count,
        outstanding_exposure=Decimal(str(exposure)).quantize(Decimal("0.01")),
    )
