"""
Operator CLI for the reconciliation service.

Usage:
    python -m settlement_recon.cli <command> [options]

Commands:
    ingest FILE  - Ingest a CSV bank statement
    run          - Run one matching pass
    stats        - Print aggregate statistics
    seed         - Insert the demo ledger invoices
    reset        - Delete all data (requires --yes)
    check        - Verify configuration and database (Bootloader full mode)
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from settlement_recon.boot import Bootloader, BootMode
from settlement_recon.database import engine, get_session_maker, init_db
from settlement_recon.logger import configure_logging
from settlement_recon.services import (
    LedgerError,
    ParseError,
    SqlAlchemyLedgerStore,
    StorageError,
    ValidationError,
    WriteFailurePolicy,
    execute_matching,
    get_reconciliation_stats,
    ingest_statement,
    reset_database,
    seed_demo_ledger,
)


def emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def with_session(action: Callable[[AsyncSession], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
    """Create tables if needed, then run action in a fresh session."""
    await init_db()
    try:
        async with get_session_maker()() as session:
            return await action(session)
    finally:
        await engine.dispose()


async def cmd_ingest(args: argparse.Namespace) -> dict[str, Any]:
    raw_text = Path(args.file).read_text(encoding="utf-8-sig")

    async def action(session: AsyncSession) -> dict[str, Any]:
        inserted = await ingest_statement(SqlAlchemyLedgerStore(session), raw_text)
        return {"file": args.file, "inserted": inserted}

    return await with_session(action)


async def cmd_run(args: argparse.Namespace) -> dict[str, Any]:
    policy = WriteFailurePolicy.HALT if args.halt_on_error else WriteFailurePolicy.SKIP

    async def action(session: AsyncSession) -> dict[str, Any]:
        result = await execute_matching(SqlAlchemyLedgerStore(session), on_write_error=policy)
        return {**asdict(result), "unmatched": result.unmatched}

    return await with_session(action)


async def cmd_stats(args: argparse.Namespace) -> dict[str, Any]:
    async def action(session: AsyncSession) -> dict[str, Any]:
        return asdict(await get_reconciliation_stats(session))

    return await with_session(action)


async def cmd_seed(args: argparse.Namespace) -> dict[str, Any]:
    async def action(session: AsyncSession) -> dict[str, Any]:
        entries = await seed_demo_ledger(session)
        return {"seeded": len(entries), "references": [entry.reference for entry in entries]}

    return await with_session(action)


async def cmd_reset(args: argparse.Namespace) -> dict[str, Any]:
    if not args.yes:
        print("Refusing to reset without --yes", file=sys.stderr)
        sys.exit(2)

    async def action(session: AsyncSession) -> dict[str, Any]:
        return {"deleted": await reset_database(session)}

    return await with_session(action)


async def cmd_check(args: argparse.Namespace) -> dict[str, Any]:
    passed = await Bootloader.validate(BootMode.FULL)
    await engine.dispose()
    return {"passed": passed}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="settlement_recon", description="Settlement reconciliation CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a CSV bank statement")
    ingest.add_argument("file", help="Path to a Date,Amount,Description,Reference CSV")
    ingest.set_defaults(handler=cmd_ingest)

    run = subparsers.add_parser("run", help="Run one matching pass")
    run.add_argument("--halt-on-error", action="store_true", help="Stop the pass at the first failed write")
    run.set_defaults(handler=cmd_run)

    stats = subparsers.add_parser("stats", help="Print aggregate statistics")
    stats.set_defaults(handler=cmd_stats)

    seed = subparsers.add_parser("seed", help="Insert the demo ledger invoices")
    seed.set_defaults(handler=cmd_seed)

    reset = subparsers.add_parser("reset", help="Delete all reconciliation data")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")
    reset.set_defaults(handler=cmd_reset)

    check = subparsers.add_parser("check", help="Verify configuration and database")
    check.set_defaults(handler=cmd_check)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        payload = asyncio.run(args.handler(args))
    except (ParseError, ValidationError, LedgerError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except StorageError as exc:
        print(f"ERROR: storage unavailable: {exc}", file=sys.stderr)
        return 3
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return 130

    emit(payload)
    if args.command == "check" and not payload["passed"]:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
