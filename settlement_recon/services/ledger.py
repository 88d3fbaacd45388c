"""Ledger entry service - obligation creation, demo seeding and reset."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.config import settings
from settlement_recon.logger import get_logger
from settlement_recon.models import (
    BankTransaction,
    LedgerEntry,
    LedgerEntryType,
    ReconciliationRecord,
)
from settlement_recon.services.store import as_utc, start_of_day

logger = get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""

    pass


class ValidationError(LedgerError):
    """Raised when a ledger entry payload is rejected."""

    pass


class ResetNotAllowedError(LedgerError):
    """Raised when a full reset is requested but disabled by configuration."""

    pass


@dataclass(frozen=True)
class NewLedgerEntry:
    amount: Decimal
    entry_date: datetime | date
    description: str
    reference: str | None = None
    entry_type: LedgerEntryType = LedgerEntryType.CREDIT
    payment_terms_days: int | None = None


# Demo invoices covering each rule outcome: exact, date slip, fee deduction,
# outstanding, small exact and a Net-15 late payment.
DEMO_LEDGER: tuple[NewLedgerEntry, ...] = (
    NewLedgerEntry(
        Decimal("12500.00"), date(2023, 11, 1), "Inv #NV-2023-001 (Net-30) - Brilliant Cut Batch", "NV-1001"
    ),
    NewLedgerEntry(
        Decimal("4250.00"), date(2023, 11, 5), "Inv #NV-2023-002 (Net-30) - Antwerp Logistics", "NV-1002"
    ),
    NewLedgerEntry(Decimal("8000.00"), date(2023, 11, 10), "Inv #NV-2023-003 (Net-30) - HK Supplier", "NV-1003"),
    NewLedgerEntry(
        Decimal("15000.00"), date(2023, 11, 12), "Inv #NV-2023-004 (Net-60) - NY Retailer Large Order", "NV-1004"
    ),
    NewLedgerEntry(Decimal("2100.00"), date(2023, 11, 15), "Inv #NV-2023-005 (Net-30) - Sample Stone", "NV-1005"),
    NewLedgerEntry(Decimal("5500.00"), date(2023, 10, 15), "Inv #NV-2023-006 (Net-15) - Old Inventory", "NV-1006"),
)


def _entry_timestamp(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return start_of_day(value)


def _build_entry(data: NewLedgerEntry) -> LedgerEntry:
    if data.amount <= 0:
        raise ValidationError(f"Ledger entry amount must be positive, got {data.amount}")
    if data.payment_terms_days is not None and data.payment_terms_days < 0:
        raise ValidationError("payment_terms_days cannot be negative")
    return LedgerEntry(
        amount=data.amount,
        entry_date=_entry_timestamp(data.entry_date),
        description=data.description,
        reference=data.reference or None,
        entry_type=data.entry_type,
        payment_terms_days=data.payment_terms_days,
        reconciled=False,
    )


async def create_ledger_entry(db: AsyncSession, data: NewLedgerEntry) -> LedgerEntry:
    """Create an unreconciled ledger entry (e.g. for an order placed)."""
    entry = _build_entry(data)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    logger.info("Ledger entry created", entry_id=str(entry.id), reference=entry.reference)
    return entry


async def seed_demo_ledger(db: AsyncSession) -> list[LedgerEntry]:
    """Insert the demo invoices used by the walkthrough statement."""
    entries = [_build_entry(data) for data in DEMO_LEDGER]
    db.add_all(entries)
    await db.commit()
    logger.info("Demo ledger seeded", entries=len(entries), context="dev-seed")
    return entries


async def reset_database(db: AsyncSession) -> dict[str, int]:
    """Delete every reconciliation record, transaction and ledger entry.

    Raises:
        ResetNotAllowedError: reset disabled, or running in production.
    """
    if not settings.reset_enabled:
        raise ResetNotAllowedError("Database reset is disabled in this environment")

    # Foreign-key order: records first
    deleted: dict[str, int] = {}
    for name, model in (
        ("reconciliation_records", ReconciliationRecord),
        ("bank_transactions", BankTransaction),
        ("ledger_entries", LedgerEntry),
    ):
        result = await db.execute(delete(model))
        deleted[name] = result.rowcount or 0
    await db.commit()
    logger.warning("Database reset", at=datetime.now(UTC).isoformat(), **deleted)
    return deleted
