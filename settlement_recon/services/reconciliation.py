"""Reconciliation matching engine."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from enum import Enum

from settlement_recon.config import settings
from settlement_recon.logger import async_log_timing, get_logger, log_exception
from settlement_recon.models import ReconciliationStatus
from settlement_recon.services.store import (
    ConcurrentMatchError,
    LedgerEntrySnapshot,
    LedgerStore,
    ReconciliationDraft,
    StorageError,
    TransactionSnapshot,
)

logger = get_logger(__name__)

NET_TERMS_PATTERN = re.compile(r"Net-(\d+)")

EXACT_MATCH_NOTE = "Exact Amount, Date, and Ref match."
FALLBACK_MATCH_NOTE = "Amount and Date match, check details."


@dataclass(frozen=True)
class ReconciliationConfig:
    """Runtime configuration for the rule cascade."""

    exact_window: timedelta
    fallback_window: timedelta
    reference_variance_limit: Decimal
    variance_note_threshold: Decimal
    default_terms_days: int


@dataclass(frozen=True)
class MatchOutcome:
    """Verdict of one rule for a transaction/entry pair."""

    status: ReconciliationStatus
    confidence_score: int
    notes: str


@dataclass(frozen=True)
class MatchRunResult:
    """Counts for one matching pass."""

    matched: int
    failed: int
    examined: int

    @property
    def unmatched(self) -> int:
        return self.examined - self.matched - self.failed


class WriteFailurePolicy(str, Enum):
    """What a pass does when the atomic write for one match fails."""

    SKIP = "skip"
    HALT = "halt"


DEFAULT_CONFIG = ReconciliationConfig(
    exact_window=timedelta(hours=24),
    fallback_window=timedelta(hours=48),
    reference_variance_limit=Decimal("50.00"),
    variance_note_threshold=Decimal("0.01"),
    default_terms_days=30,
)

_config_cache: ReconciliationConfig | None = None


def load_reconciliation_config(force_reload: bool = False) -> ReconciliationConfig:
    """Build the matching configuration from settings.

    Caches the result; pass force_reload after changing settings.
    """
    global _config_cache
    if _config_cache is not None and not force_reload:
        return _config_cache

    config = ReconciliationConfig(
        exact_window=timedelta(hours=settings.recon_exact_window_hours),
        fallback_window=timedelta(hours=settings.recon_fallback_window_hours),
        reference_variance_limit=settings.recon_reference_variance_limit,
        variance_note_threshold=settings.recon_variance_note_threshold,
        default_terms_days=settings.recon_default_terms_days,
    )
    if config != DEFAULT_CONFIG:
        logger.info(
            "Reconciliation config overridden from settings",
            exact_window_hours=settings.recon_exact_window_hours,
            fallback_window_hours=settings.recon_fallback_window_hours,
            reference_variance_limit=str(config.reference_variance_limit),
            default_terms_days=config.default_terms_days,
        )

    _config_cache = config
    return config


def extract_payment_terms(entry: LedgerEntrySnapshot, default_days: int) -> int:
    """Net-days for an entry: explicit column, else a "Net-<N>" token, else the default."""
    if entry.payment_terms_days is not None:
        return entry.payment_terms_days
    found = NET_TERMS_PATTERN.search(entry.description or "")
    if found:
        return int(found.group(1))
    return default_days


def within_window(txn: TransactionSnapshot, entry: LedgerEntrySnapshot, window: timedelta) -> bool:
    return abs(txn.txn_date - entry.entry_date) < window


def match_exact(
    txn: TransactionSnapshot,
    entry: LedgerEntrySnapshot,
    config: ReconciliationConfig,
) -> MatchOutcome | None:
    """Rule 1: same amount, same reference (absent == absent), inside the exact window."""
    if (
        entry.amount == txn.amount
        and entry.reference == txn.reference
        and within_window(txn, entry, config.exact_window)
    ):
        return MatchOutcome(ReconciliationStatus.MATCHED, 100, EXACT_MATCH_NOTE)
    return None


def match_reference(
    txn: TransactionSnapshot,
    entry: LedgerEntrySnapshot,
    config: ReconciliationConfig,
) -> MatchOutcome | None:
    """Rule 2: shared non-empty reference, amount within the fee variance limit.

    Confidence depends on lateness only; the variance is reported in the notes.
    """
    if txn.reference is None or entry.reference != txn.reference:
        return None
    variance = entry.amount - txn.amount
    if abs(variance) > config.reference_variance_limit:
        return None

    terms = extract_payment_terms(entry, config.default_terms_days)
    due_date = entry.entry_date + timedelta(days=terms)
    days_late = math.ceil((txn.txn_date - due_date) / timedelta(days=1))

    notes = "Ref Match."
    if abs(variance) > config.variance_note_threshold:
        notes += f" Variance: ${variance:.2f} (Fee)."
    if days_late > 0:
        notes += f" LATE PAYMENT: {days_late} days overdue (Terms: Net-{terms})."
        confidence = 80
    else:
        notes += " Paid on time."
        confidence = 95
    return MatchOutcome(ReconciliationStatus.PARTIAL, confidence, notes)


def match_amount_and_date(
    txn: TransactionSnapshot,
    entry: LedgerEntrySnapshot,
    config: ReconciliationConfig,
) -> MatchOutcome | None:
    """Rule 3: same amount inside the wider fallback window, reference ignored."""
    if entry.amount == txn.amount and within_window(txn, entry, config.fallback_window):
        return MatchOutcome(ReconciliationStatus.PARTIAL, 80, FALLBACK_MATCH_NOTE)
    return None


MatchRule = Callable[
    [TransactionSnapshot, LedgerEntrySnapshot, ReconciliationConfig],
    MatchOutcome | None,
]

RULE_CASCADE: tuple[MatchRule, ...] = (match_exact, match_reference, match_amount_and_date)


def find_match(
    txn: TransactionSnapshot,
    entries: Sequence[LedgerEntrySnapshot],
    config: ReconciliationConfig,
) -> tuple[LedgerEntrySnapshot, MatchOutcome] | None:
    """First rule with any qualifying entry wins; within a rule the first entry in scan order wins."""
    for rule in RULE_CASCADE:
        for entry in entries:
            outcome = rule(txn, entry, config)
            if outcome is not None:
                return entry, outcome
    return None


async def execute_matching(
    store: LedgerStore,
    *,
    config: ReconciliationConfig | None = None,
    on_write_error: WriteFailurePolicy = WriteFailurePolicy.SKIP,
) -> MatchRunResult:
    """Run one matching pass over every unreconciled transaction.

    Callers must not run two passes against the same store at once.
    A failed atomic write aborts only that match; on_write_error decides
    whether the pass continues (SKIP) or re-raises (HALT). An entry rejected
    as already reconciled is dropped from the candidates; any other failed
    entry stays available.
    """
    config = config or load_reconciliation_config()

    transactions = await store.load_unreconciled_transactions()
    available = list(await store.load_unreconciled_ledger_entries())

    matched = 0
    failed = 0

    async with async_log_timing(
        "reconciliation_pass",
        logger=logger,
        transactions=len(transactions),
        ledger_entries=len(available),
    ) as timing:
        for txn in transactions:
            if not available:
                break
            found = find_match(txn, available, config)
            if found is None:
                continue
            entry, outcome = found

            draft = ReconciliationDraft(
                bank_transaction_id=txn.id,
                ledger_entry_id=entry.id,
                status=outcome.status,
                confidence_score=outcome.confidence_score,
                notes=outcome.notes,
            )
            try:
                await store.atomic_write(draft)
            except StorageError as exc:
                failed += 1
                if isinstance(exc, ConcurrentMatchError) and exc.ledger_entry_id == entry.id:
                    # Consumed by another writer
                    available.remove(entry)
                log_exception(
                    logger,
                    exc,
                    "Reconciliation write failed",
                    txn_id=str(txn.id),
                    entry_id=str(entry.id),
                    policy=on_write_error.value,
                )
                if on_write_error is WriteFailurePolicy.HALT:
                    timing.update(matched=matched, failed=failed, halted=True)
                    raise
                continue

            available.remove(entry)
            matched += 1
            logger.debug(
                "Transaction reconciled",
                txn_id=str(txn.id),
                entry_id=str(entry.id),
                status=outcome.status.value,
                confidence=outcome.confidence_score,
            )

        timing.update(matched=matched, failed=failed)

    return MatchRunResult(matched=matched, failed=failed, examined=len(transactions))


async def run_reconciliation(
    store: LedgerStore,
    *,
    on_write_error: WriteFailurePolicy = WriteFailurePolicy.SKIP,
) -> int:
    """Run a pass and return the number of transactions reconciled."""
    result = await execute_matching(store, on_write_error=on_write_error)
    return result.matched
