"""Pydantic schemas for bank statement ingestion."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from settlement_recon.schemas.base import BaseResponse, ListResponse
from settlement_recon.schemas.reconciliation import ReconciliationRecordSummary


class StatementIngestRequest(BaseModel):
    """Raw statement text with a Date,Amount,Description,Reference header."""

    content: str = Field(..., min_length=1)


class StatementIngestResponse(BaseModel):
    inserted: int


class BankTransactionResponse(BaseResponse):
    id: UUID
    amount: Decimal
    txn_date: datetime
    description: str
    reference: str | None
    reconciled: bool
    created_at: datetime
    reconciliation: ReconciliationRecordSummary | None = None


BankTransactionListResponse = ListResponse[BankTransactionResponse]
