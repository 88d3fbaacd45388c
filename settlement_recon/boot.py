"""
Environment Bootloader.

Single place for environment validation. It is used by:
1. Application Startup (main.py) -> mode="critical"
2. CI Pipelines -> mode="dry-run"
3. Operator smoke checks (`python -m settlement_recon.cli check`) -> mode="full"
"""

import asyncio
import sys
import time
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from settlement_recon import models  # noqa: F401
from settlement_recon.config import Settings, settings
from settlement_recon.database import Base, engine_options
from settlement_recon.logger import get_logger

logger = get_logger(__name__)


class BootMode(str, Enum):
    CRITICAL = "critical"  # DB only (Fast fail for startup)
    FULL = "full"  # DB + schema tables present
    DRY_RUN = "dry-run"  # Static config check only (CI lint)


@dataclass
class ServiceStatus:
    service: str
    status: str  # 'ok', 'warning', 'error', 'skipped'
    message: str
    duration_ms: float = 0.0


class Bootloader:
    """Handles environment validation and database connectivity checks."""

    @staticmethod
    async def validate(mode: BootMode = BootMode.CRITICAL) -> bool:
        """Run validation checks. Returns True if passed, False if failed.

        If mode is CRITICAL, this may call sys.exit(1) on failure.
        """
        logger.info("Bootloader starting validation", mode=mode.value)

        if not Bootloader._check_static_config():
            if mode == BootMode.CRITICAL:
                logger.critical("Static configuration check failed. Refusing to start.")
                sys.exit(1)
            return False

        if mode == BootMode.DRY_RUN:
            return True

        results = [await Bootloader._check_database()]
        if mode == BootMode.FULL:
            results.append(await Bootloader._check_schema())

        passed = True
        for res in results:
            if res.status == "error":
                passed = False
                logger.error(
                    "Service check failed",
                    service=res.service,
                    error=res.message,
                    duration_ms=res.duration_ms,
                )
            elif res.status == "warning":
                logger.warning(
                    "Service check warning",
                    service=res.service,
                    message=res.message,
                    duration_ms=res.duration_ms,
                )
            else:
                logger.info("Service check passed", service=res.service, duration_ms=res.duration_ms)

        if not passed:
            if mode == BootMode.CRITICAL:
                logger.critical("Critical service checks failed. Application cannot start.")
                sys.exit(1)
            return False

        logger.info("Bootloader validation successful")
        return True

    @staticmethod
    def _check_static_config() -> bool:
        """Verify settings load and the database URL is usable."""
        try:
            Settings()
        except ValidationError as e:
            logger.error("Configuration load failed", error=str(e))
            return False
        if not settings.database_url:
            logger.error("Configuration load failed", error="DATABASE_URL is empty")
            return False
        return True

    @staticmethod
    async def _check_database() -> ServiceStatus:
        """Verify database connectivity (SELECT 1)."""
        start = time.perf_counter()
        engine = create_async_engine(settings.database_url, echo=False, **engine_options(settings.database_url))
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "ok", "Connection successful", duration_ms)
        except (SQLAlchemyError, OSError) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "error", str(e), duration_ms)
        finally:
            await engine.dispose()

    @staticmethod
    async def _check_schema() -> ServiceStatus:
        """Warn when reconciliation tables have not been created yet."""
        start = time.perf_counter()
        engine = create_async_engine(settings.database_url, echo=False, **engine_options(settings.database_url))
        try:
            async with engine.connect() as conn:
                existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        except (SQLAlchemyError, OSError) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("schema", "error", str(e), duration_ms)
        finally:
            await engine.dispose()

        duration_ms = (time.perf_counter() - start) * 1000
        missing = sorted(set(Base.metadata.tables) - existing)
        if missing:
            return ServiceStatus("schema", "warning", f"Missing tables: {', '.join(missing)}", duration_ms)
        return ServiceStatus("schema", "ok", "All tables present", duration_ms)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", type=str, default="full", choices=["critical", "full", "dry-run"])
    args = parser.parse_args()

    print(f"Bootloader: Running validation cycle (mode={args.mode})")

    try:
        success = asyncio.run(Bootloader.validate(BootMode(args.mode)))
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(130)

    if success:
        print("Validation check passed.")
        sys.exit(0)
    else:
        print("Validation check failed.")
        sys.exit(1)
