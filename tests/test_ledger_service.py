"""Tests for ledger entry creation, demo seeding, reset and statistics."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from settlement_recon.models import BankTransaction, LedgerEntry, ReconciliationRecord
from settlement_recon.services import ledger as ledger_module
from settlement_recon.services.deduplication import ingest_statement
from settlement_recon.services.ledger import (
    DEMO_LEDGER,
    NewLedgerEntry,
    ResetNotAllowedError,
    ValidationError,
    create_ledger_entry,
    reset_database,
    seed_demo_ledger,
)
from settlement_recon.services.reconciliation import execute_matching
from settlement_recon.services.stats import get_reconciliation_stats
from settlement_recon.services.store import SqlAlchemyLedgerStore

# Payments against the demo ledger: exact, one-day slip, fee deduction,
# a Net-15 invoice paid late, and one payment nobody invoiced.
DEMO_STATEMENT = """Date,Amount,Description,Reference
2023-11-01,12500.00,Wire NV-2023-001,NV-1001
2023-11-06,4250.00,Antwerp wire,NV-9999
2023-11-12,7975.00,HK wire less fee,NV-1003
2023-11-20,5500.00,Old inventory payment,NV-1006
2023-11-21,99.00,Unknown deposit,
"""


class TestCreateLedgerEntry:
    async def test_creates_unreconciled_entry_at_midnight_utc(self, db) -> None:
        entry = await create_ledger_entry(
            db,
            NewLedgerEntry(
                amount=Decimal("250.00"),
                entry_date=date(2023, 11, 1),
                description="Order #77 (Net-15)",
                reference="ORD-77",
            ),
        )

        assert entry.reconciled is False
        assert entry.entry_date.replace(tzinfo=None) == datetime(2023, 11, 1)
        assert entry.reference == "ORD-77"

    async def test_keeps_time_of_datetime_entry_date(self, db) -> None:
        entry = await create_ledger_entry(
            db,
            NewLedgerEntry(
                amount=Decimal("1.00"),
                entry_date=datetime(2023, 11, 1, 15, 30, tzinfo=UTC),
                description="x",
            ),
        )

        assert entry.entry_date.replace(tzinfo=None) == datetime(2023, 11, 1, 15, 30)

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    async def test_rejects_non_positive_amount(self, db, amount) -> None:
        with pytest.raises(ValidationError, match="must be positive"):
            await create_ledger_entry(db, NewLedgerEntry(amount=amount, entry_date=date(2023, 1, 1), description="x"))

        count = (await db.execute(select(func.count(LedgerEntry.id)))).scalar_one()
        assert count == 0

    async def test_empty_reference_is_stored_as_absent(self, db) -> None:
        entry = await create_ledger_entry(
            db, NewLedgerEntry(amount=Decimal("1.00"), entry_date=date(2023, 1, 1), description="x", reference="")
        )
        assert entry.reference is None


class TestSeedAndReconcile:
    async def test_seed_inserts_demo_invoices(self, db) -> None:
        entries = await seed_demo_ledger(db)

        assert len(entries) == len(DEMO_LEDGER) == 6
        assert {e.reference for e in entries} == {f"NV-100{i}" for i in range(1, 7)}

    async def test_demo_walkthrough(self, db) -> None:
        """GIVEN: The demo ledger and a statement covering each scenario
        WHEN: Ingesting and running one pass
        THEN: Four payments reconcile and exposure covers the rest"""
        await seed_demo_ledger(db)
        store = SqlAlchemyLedgerStore(db)
        assert await ingest_statement(store, DEMO_STATEMENT) == 5

        result = await execute_matching(store)

        assert result.matched == 4
        assert result.unmatched == 1

        records = (await db.execute(select(ReconciliationRecord))).scalars().all()
        by_score = sorted((r.confidence_score, r.notes) for r in records)
        assert by_score == [
            (80, "Amount and Date match, check details."),
            (80, "Ref Match. LATE PAYMENT: 21 days overdue (Terms: Net-15)."),
            (95, "Ref Match. Variance: $25.00 (Fee). Paid on time."),
            (100, "Exact Amount, Date, and Ref match."),
        ]

        stats = await get_reconciliation_stats(db)
        assert stats.total_transactions == 5
        assert stats.reconciled_count == 4
        assert stats.unreconciled_count == 1
        assert stats.ledger_entry_count == 6
        assert stats.outstanding_exposure == Decimal("17100.00")


class TestStats:
    async def test_empty_database(self, db) -> None:
        stats = await get_reconciliation_stats(db)

        assert stats.total_transactions == 0
        assert stats.reconciled_count == 0
        assert stats.outstanding_exposure == Decimal("0.00")


class TestResetDatabase:
    async def test_deletes_everything(self, db) -> None:
        await seed_demo_ledger(db)
        store = SqlAlchemyLedgerStore(db)
        await ingest_statement(store, DEMO_STATEMENT)
        await execute_matching(store)

        deleted = await reset_database(db)

        assert deleted == {"reconciliation_records": 4, "bank_transactions": 5, "ledger_entries": 6}
        for model in (ReconciliationRecord, BankTransaction, LedgerEntry):
            assert (await db.execute(select(func.count()).select_from(model))).scalar_one() == 0

    async def test_refused_when_disabled(self, db, monkeypatch) -> None:
        monkeypatch.setattr(ledger_module.settings, "allow_reset", False)
        await seed_demo_ledger(db)

        with pytest.raises(ResetNotAllowedError):
            await reset_database(db)

        assert (await db.execute(select(func.count(LedgerEntry.id)))).scalar_one() == 6

    async def test_refused_in_production(self, db, monkeypatch) -> None:
        monkeypatch.setattr(ledger_module.settings, "environment", "production")

        with pytest.raises(ResetNotAllowedError):
            await reset_database(db)
