"""Statement ingestion with signature-based deduplication."""

import hashlib
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from settlement_recon.logger import get_logger, log_timing
from settlement_recon.services.statement_parser import RawStatementRow, parse_statement
from settlement_recon.services.store import LedgerStore, NewTransaction, as_utc, start_of_day

logger = get_logger(__name__)

CENT = Decimal("0.01")
NULL_REFERENCE = "NULL"
# Numeric(18, 2) holds at most 16 integer digits
MAX_AMOUNT = Decimal("1e16")


class ValidationError(Exception):
    """Raised when a statement field cannot be converted to its typed form."""

    pass


@dataclass(frozen=True)
class StatementCandidate:
    """Typed statement row awaiting the duplicate check."""

    line_number: int
    amount: Decimal
    txn_day: date
    description: str
    reference: str | None


def parse_amount(value: str, line_number: int) -> Decimal:
    try:
        amount = Decimal(value)
        cents = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Line {line_number}: invalid amount {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Line {line_number}: invalid amount {value!r}")
    if abs(cents) >= MAX_AMOUNT:
        raise ValidationError(f"Line {line_number}: invalid amount {value!r} (out of range)")
    return amount


def parse_day(value: str, line_number: int) -> date:
    """Parse an ISO calendar date; an ISO timestamp contributes its date part."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError as exc:
        raise ValidationError(f"Line {line_number}: invalid date {value!r}") from exc


class DeduplicationService:
    """Converts parsed statement rows into new bank transactions, skipping known rows."""

    @staticmethod
    def calculate_transaction_hash(
        amount: Decimal,
        txn_day: date,
        reference: str | None,
        description: str,
    ) -> str:
        """Calculate deduplication signature for a bank transaction.

        Hash = SHA256(amount to 2dp|calendar day|reference or NULL|description)

        Comparison is exact: no case folding or whitespace collapsing, so rows
        differing by one character are kept as distinct transactions.
        """
        components = [
            str(amount.quantize(CENT, rounding=ROUND_HALF_UP)),
            txn_day.isoformat(),
            reference or NULL_REFERENCE,
            description,
        ]
        hash_input = "|".join(components).encode("utf-8")
        return hashlib.sha256(hash_input).hexdigest()

    @staticmethod
    def to_candidate(row: RawStatementRow) -> StatementCandidate:
        """Type a raw row. Raises ValidationError on a bad amount or date."""
        return StatementCandidate(
            line_number=row.line_number,
            amount=parse_amount(row.amount, row.line_number),
            txn_day=parse_day(row.date, row.line_number),
            description=row.description,
            reference=row.reference or None,
        )

    async def ingest(self, store: LedgerStore, raw_text: str) -> int:
        """Parse, deduplicate and persist a statement. Returns rows inserted.

        Any ParseError or ValidationError aborts the call before anything is written.
        """
        rows = parse_statement(raw_text)
        if not rows:
            return 0

        candidates = [self.to_candidate(row) for row in rows]

        with log_timing("statement_ingestion", logger=logger, rows_parsed=len(rows)) as timing:
            start = min(c.txn_day for c in candidates)
            end = max(c.txn_day for c in candidates)
            existing = await store.load_transactions_in_date_range(start, end)

            seen = {
                self.calculate_transaction_hash(
                    txn.amount, as_utc(txn.txn_date).date(), txn.reference, txn.description
                )
                for txn in existing
            }

            new_rows: list[NewTransaction] = []
            for candidate in candidates:
                signature = self.calculate_transaction_hash(
                    candidate.amount, candidate.txn_day, candidate.reference, candidate.description
                )
                # Also guards against repeated rows within this statement
                if signature in seen:
                    continue
                seen.add(signature)
                new_rows.append(
                    NewTransaction(
                        amount=candidate.amount,
                        txn_date=start_of_day(candidate.txn_day),
                        description=candidate.description,
                        reference=candidate.reference,
                    )
                )

            inserted = await store.insert_transactions_batch(new_rows)
            timing.update(
                inserted=inserted,
                skipped=len(candidates) - len(new_rows),
                existing_in_range=len(existing),
            )

        return inserted


async def ingest_statement(store: LedgerStore, raw_text: str) -> int:
    """Ingest raw statement text into the store; returns the count of new rows."""
    return await DeduplicationService().ingest(store, raw_text)
