"""Settlement reconciliation service: statement ingestion and ledger matching."""

__version__ = "0.1.0"
