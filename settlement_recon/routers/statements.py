"""Bank statement ingestion API router."""

import asyncio

from fastapi import APIRouter, File, Query, UploadFile
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from settlement_recon.config import settings
from settlement_recon.deps import DbSession, Store
from settlement_recon.logger import get_logger
from settlement_recon.models import BankTransaction
from settlement_recon.schemas import (
    BankTransactionListResponse,
    BankTransactionResponse,
    StatementIngestRequest,
    StatementIngestResponse,
)
from settlement_recon.services import (
    ParseError,
    StorageError,
    ValidationError,
    ingest_statement,
)
from settlement_recon.services.store import SqlAlchemyLedgerStore
from settlement_recon.utils import raise_bad_request, raise_service_unavailable, raise_too_large

router = APIRouter(prefix="/statements", tags=["statements"])
logger = get_logger(__name__)

# The duplicate check reads before it writes; overlapping ingestions must not interleave
_INGEST_LOCK = asyncio.Lock()


async def _ingest(store: SqlAlchemyLedgerStore, content: str, *, source: str) -> StatementIngestResponse:
    async with _INGEST_LOCK:
        try:
            inserted = await ingest_statement(store, content)
        except (ParseError, ValidationError) as exc:
            logger.warning("Statement rejected", source=source, error=str(exc))
            raise_bad_request(str(exc), cause=exc)
        except StorageError as exc:
            logger.error("Statement storage failed", source=source, error=str(exc))
            raise_service_unavailable("Transaction store unavailable", cause=exc)
    return StatementIngestResponse(inserted=inserted)


@router.post("/ingest", response_model=StatementIngestResponse)
async def ingest_statement_text(payload: StatementIngestRequest, store: Store) -> StatementIngestResponse:
    """Ingest statement text; re-sending the same text inserts nothing."""
    if len(payload.content.encode("utf-8")) > settings.max_statement_bytes:
        raise_too_large("Statement exceeds size limit")
    return await _ingest(store, payload.content, source="text")


@router.post("/upload", response_model=StatementIngestResponse)
async def upload_statement(store: Store, file: UploadFile = File(...)) -> StatementIngestResponse:
    """Ingest an uploaded CSV statement file."""
    content = await file.read()
    if len(content) > settings.max_statement_bytes:
        raise_too_large("File exceeds size limit")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise_bad_request("Statement file must be UTF-8 text", cause=exc)
    logger.info("Statement upload received", filename=file.filename, size_bytes=len(content))
    return await _ingest(store, text, source=file.filename or "upload")


@router.get("/transactions", response_model=BankTransactionListResponse)
async def list_transactions(
    db: DbSession,
    reconciled: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> BankTransactionListResponse:
    """Bank transactions, most recent first; reconciled ones carry their record."""
    query = select(BankTransaction).options(selectinload(BankTransaction.reconciliation))
    total_query = select(func.count(BankTransaction.id))
    if reconciled is not None:
        query = query.where(BankTransaction.reconciled.is_(reconciled))
        total_query = total_query.where(BankTransaction.reconciled.is_(reconciled))
    query = (
        query.order_by(BankTransaction.txn_date.desc(), BankTransaction.created_at, BankTransaction.id)
        .limit(limit)
        .offset(offset)
    )

    result = await db.execute(query)
    items = [BankTransactionResponse.model_validate(txn) for txn in result.scalars().all()]
    total = (await db.execute(total_query)).scalar_one()
    return BankTransactionListResponse(items=items, total=total)
