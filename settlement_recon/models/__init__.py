"""SQLAlchemy models package."""

from settlement_recon.models.ledger import LedgerEntry, LedgerEntryType
from settlement_recon.models.reconciliation import ReconciliationRecord, ReconciliationStatus
from settlement_recon.models.transaction import BankTransaction

__all__ = [
    "BankTransaction",
    "LedgerEntry",
    "LedgerEntryType",
    "ReconciliationRecord",
    "ReconciliationStatus",
]
