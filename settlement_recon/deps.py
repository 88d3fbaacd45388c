"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from settlement_recon.deps import DbSession, Store

    async def my_endpoint(db: DbSession, store: Store):
        # db is the request's AsyncSession; store wraps the same session
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.database import get_db
from settlement_recon.services.store import SqlAlchemyLedgerStore

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_store(db: DbSession) -> SqlAlchemyLedgerStore:
    return SqlAlchemyLedgerStore(db)


Store = Annotated[SqlAlchemyLedgerStore, Depends(get_store)]

__all__ = ["DbSession", "Store", "get_store"]
