"""Reconciliation audit record model."""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_recon.database import Base
from settlement_recon.models.base import UUIDMixin

if TYPE_CHECKING:
    from settlement_recon.models.ledger import LedgerEntry
    from settlement_recon.models.transaction import BankTransaction


class ReconciliationStatus(str, Enum):
    """Outcome of a match."""

    MATCHED = "matched"
    PARTIAL = "partial"


class ReconciliationRecord(UUIDMixin, Base):
    """Immutable link between one bank transaction and one ledger entry."""

    __tablename__ = "reconciliation_records"

    bank_transaction_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bank_transactions.id"),
        nullable=False,
        index=True,
    )
    ledger_entry_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_entries.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[ReconciliationStatus] = mapped_column(
        SQLEnum(ReconciliationStatus, name="reconciliation_status_enum"),
        nullable=False,
    )
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-100
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    matched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    transaction: Mapped["BankTransaction"] = relationship(
        "BankTransaction",
        back_populates="reconciliation",
    )
    ledger_entry: Mapped["LedgerEntry"] = relationship("LedgerEntry")
