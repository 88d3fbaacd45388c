"""Ledger entry API router."""

from fastapi import APIRouter, Query, status
from sqlalchemy import func, select

from settlement_recon.deps import DbSession
from settlement_recon.models import LedgerEntry
from settlement_recon.schemas import (
    LedgerEntryCreate,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    LedgerResetResponse,
)
from settlement_recon.services import (
    LedgerError,
    NewLedgerEntry,
    ResetNotAllowedError,
    create_ledger_entry,
    reset_database,
    seed_demo_ledger,
)
from settlement_recon.utils import raise_bad_request, raise_forbidden

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/entries", response_model=LedgerEntryListResponse)
async def list_ledger_entries(
    db: DbSession,
    reconciled: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> LedgerEntryListResponse:
    query = (
        select(LedgerEntry)
        .where(LedgerEntry.reconciled.is_(reconciled))
        .order_by(LedgerEntry.entry_date.desc(), LedgerEntry.id)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    items = [LedgerEntryResponse.model_validate(entry) for entry in result.scalars().all()]
    total = (
        await db.execute(select(func.count(LedgerEntry.id)).where(LedgerEntry.reconciled.is_(reconciled)))
    ).scalar_one()
    return LedgerEntryListResponse(items=items, total=total)


@router.post("/entries", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(payload: LedgerEntryCreate, db: DbSession) -> LedgerEntryResponse:
    try:
        entry = await create_ledger_entry(db, NewLedgerEntry(**payload.model_dump()))
    except LedgerError as exc:
        raise_bad_request(str(exc), cause=exc)
    return LedgerEntryResponse.model_validate(entry)


@router.post("/seed", response_model=LedgerEntryListResponse, status_code=status.HTTP_201_CREATED)
async def seed_ledger(db: DbSession) -> LedgerEntryListResponse:
    entries = await seed_demo_ledger(db)
    items = [LedgerEntryResponse.model_validate(entry) for entry in entries]
    return LedgerEntryListResponse(items=items, total=len(items))


@router.post("/reset", response_model=LedgerResetResponse)
async def reset_ledger(db: DbSession) -> LedgerResetResponse:
    """Delete all records, transactions and ledger entries."""
    try:
        deleted = await reset_database(db)
    except ResetNotAllowedError as exc:
        raise_forbidden(str(exc), cause=exc)
    return LedgerResetResponse(**deleted)
