from settlement_recon.schemas.base import BaseResponse, ListResponse
from settlement_recon.schemas.ledger import (
    LedgerEntryCreate,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    LedgerResetResponse,
)
from settlement_recon.schemas.reconciliation import (
    ReconciliationRecordListResponse,
    ReconciliationRecordResponse,
    ReconciliationRecordSummary,
    ReconciliationRunResponse,
    ReconciliationStatsResponse,
)
from settlement_recon.schemas.statements import (
    BankTransactionListResponse,
    BankTransactionResponse,
    StatementIngestRequest,
    StatementIngestResponse,
)

__all__ = [
    "BankTransactionListResponse",
    "BankTransactionResponse",
    "BaseResponse",
    "LedgerEntryCreate",
    "LedgerEntryListResponse",
    "LedgerEntryResponse",
    "LedgerResetResponse",
    "ListResponse",
    "ReconciliationRecordListResponse",
    "ReconciliationRecordResponse",
    "ReconciliationRecordSummary",
    "ReconciliationRunResponse",
    "ReconciliationStatsResponse",
    "StatementIngestRequest",
    "StatementIngestResponse",
]
