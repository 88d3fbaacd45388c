"""Services package."""

from settlement_recon.services.deduplication import (
    DeduplicationService,
    ValidationError,
    ingest_statement,
)
from settlement_recon.services.ledger import (
    LedgerError,
    NewLedgerEntry,
    ResetNotAllowedError,
    create_ledger_entry,
    reset_database,
    seed_demo_ledger,
)
from settlement_recon.services.reconciliation import (
    MatchRunResult,
    ReconciliationConfig,
    WriteFailurePolicy,
    execute_matching,
    load_reconciliation_config,
    run_reconciliation,
)
from settlement_recon.services.statement_parser import ParseError, parse_statement
from settlement_recon.services.stats import ReconciliationStats, get_reconciliation_stats
from settlement_recon.services.store import (
    ConcurrentMatchError,
    LedgerStore,
    SqlAlchemyLedgerStore,
    StorageError,
)

__all__ = [
    "ConcurrentMatchError",
    "DeduplicationService",
    "LedgerError",
    "LedgerStore",
    "MatchRunResult",
    "NewLedgerEntry",
    "ParseError",
    "ReconciliationConfig",
    "ReconciliationStats",
    "ResetNotAllowedError",
    "SqlAlchemyLedgerStore",
    "StorageError",
    "ValidationError",
    "WriteFailurePolicy",
    "create_ledger_entry",
    "execute_matching",
    "get_reconciliation_stats",
    "ingest_statement",
    "load_reconciliation_config",
    "parse_statement",
    "reset_database",
    "run_reconciliation",
    "seed_demo_ledger",
]
