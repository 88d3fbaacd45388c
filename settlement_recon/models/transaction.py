"""Bank transaction model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_recon.database import Base
from settlement_recon.models.base import CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from settlement_recon.models.reconciliation import ReconciliationRecord


class BankTransaction(UUIDMixin, CreatedAtMixin, Base):
    """Settlement event observed on an external bank statement."""

    __tablename__ = "bank_transactions"

    # Signed; statement rows are stored at midnight UTC of their calendar day
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    txn_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    reconciliation: Mapped["ReconciliationRecord | None"] = relationship(
        "ReconciliationRecord",
        back_populates="transaction",
        uselist=False,
    )
