"""Reconciliation API router."""

import asyncio

from fastapi import APIRouter, Query
from sqlalchemy import func, select

from settlement_recon.deps import DbSession, Store
from settlement_recon.logger import get_logger
from settlement_recon.models import ReconciliationRecord, ReconciliationStatus
from settlement_recon.schemas import (
    ReconciliationRecordListResponse,
    ReconciliationRecordResponse,
    ReconciliationRunResponse,
    ReconciliationStatsResponse,
)
from settlement_recon.services import StorageError, execute_matching, get_reconciliation_stats
from settlement_recon.utils import raise_conflict, raise_service_unavailable

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])
logger = get_logger(__name__)

# At most one matching pass in flight per process
_PASS_LOCK = asyncio.Lock()


@router.post("/run", response_model=ReconciliationRunResponse)
async def run_reconciliation(store: Store) -> ReconciliationRunResponse:
    if _PASS_LOCK.locked():
        raise_conflict("A reconciliation pass is already running")

    async with _PASS_LOCK:
        try:
            result = await execute_matching(store)
        except StorageError as exc:
            logger.error("Reconciliation pass could not load its snapshot", error=str(exc))
            raise_service_unavailable("Transaction store unavailable", cause=exc)

    return ReconciliationRunResponse(
        matched=result.matched,
        failed=result.failed,
        examined=result.examined,
        unmatched=result.unmatched,
    )


@router.get("/records", response_model=ReconciliationRecordListResponse)
async def list_records(
    db: DbSession,
    status: ReconciliationStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> ReconciliationRecordListResponse:
    query = select(ReconciliationRecord)
    total_query = select(func.count(ReconciliationRecord.id))
    if status:
        query = query.where(ReconciliationRecord.status == status)
        total_query = total_query.where(ReconciliationRecord.status == status)
    query = (
        query.order_by(ReconciliationRecord.matched_at.desc(), ReconciliationRecord.id)
        .limit(limit)
        .offset(offset)
    )

    result = await db.execute(query)
    items = [ReconciliationRecordResponse.model_validate(record) for record in result.scalars().all()]
    total = (await db.execute(total_query)).scalar_one()
    return ReconciliationRecordListResponse(items=items, total=total)


@router.get("/stats", response_model=ReconciliationStatsResponse)
async def reconciliation_stats(db: DbSession) -> ReconciliationStatsResponse:
    stats = await get_reconciliation_stats(db)
    return ReconciliationStatsResponse.model_validate(stats)
