"""API routers."""

from settlement_recon.routers.ledger import router as ledger_router
from settlement_recon.routers.reconciliation import router as reconciliation_router
from settlement_recon.routers.statements import router as statements_router

__all__ = ["ledger_router", "reconciliation_router", "statements_router"]
