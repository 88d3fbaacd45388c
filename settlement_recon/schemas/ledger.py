"""Pydantic schemas for ledger entries."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field

from settlement_recon.models import LedgerEntryType
from settlement_recon.schemas.base import BaseResponse, ListResponse


class LedgerEntryCreate(BaseModel):
    """Schema for creating a ledger entry."""

    amount: Annotated[Decimal, Field(gt=0, decimal_places=2)]
    entry_date: date
    description: Annotated[str, Field(min_length=1, max_length=500)]
    reference: Annotated[str | None, Field(None, max_length=100)] = None
    entry_type: LedgerEntryType = LedgerEntryType.CREDIT
    payment_terms_days: Annotated[int | None, Field(None, ge=0, le=3650)] = None


class LedgerEntryResponse(BaseResponse):
    id: UUID
    amount: Decimal
    entry_date: datetime
    description: str
    reference: str | None
    entry_type: LedgerEntryType
    payment_terms_days: int | None
    reconciled: bool
    created_at: datetime


LedgerEntryListResponse = ListResponse[LedgerEntryResponse]


class LedgerResetResponse(BaseModel):
    reconciliation_records: int
    bank_transactions: int
    ledger_entries: int
