"""Ledger entry model."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from settlement_recon.database import Base
from settlement_recon.models.base import CreatedAtMixin, UUIDMixin


class LedgerEntryType(str, Enum):
    """Side of the obligation as issued."""

    CREDIT = "credit"
    DEBIT = "debit"


class LedgerEntry(UUIDMixin, CreatedAtMixin, Base):
    """Internally issued obligation (invoice / credit facility draw)."""

    __tablename__ = "ledger_entries"

    # Face value; never mutated after creation
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        SQLEnum(LedgerEntryType, name="ledger_entry_type_enum"),
        nullable=False,
        default=LedgerEntryType.CREDIT,
    )
    # Net-N terms; when NULL the matcher falls back to a "Net-<N>" token in description
    payment_terms_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
