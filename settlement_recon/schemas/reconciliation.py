"""Pydantic schemas for reconciliation API."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from settlement_recon.models import ReconciliationStatus
from settlement_recon.schemas.base import BaseResponse, ListResponse


class ReconciliationRecordSummary(BaseResponse):
    id: UUID
    ledger_entry_id: UUID
    status: ReconciliationStatus
    confidence_score: int
    notes: str
    matched_at: datetime


class ReconciliationRecordResponse(ReconciliationRecordSummary):
    bank_transaction_id: UUID


ReconciliationRecordListResponse = ListResponse[ReconciliationRecordResponse]


class ReconciliationRunResponse(BaseModel):
    """Response for a matching pass."""

    matched: int
    failed: int
    examined: int
    unmatched: int


class ReconciliationStatsResponse(BaseResponse):
    total_transactions: int
    reconciled_count: int
    unreconciled_count: int
    ledger_entry_count: int
    outstanding_exposure: Decimal
