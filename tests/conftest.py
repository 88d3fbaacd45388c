"""Test fixtures and configuration."""

import logging
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

# Settings are read at import time; point them at SQLite before the package loads
_DEFAULT_DB_DIR = Path(tempfile.mkdtemp(prefix="settlement-recon-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DEFAULT_DB_DIR / 'default.db'}")
os.environ["ENVIRONMENT"] = "testing"
os.environ["ALLOW_RESET"] = "true"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from settlement_recon import database  # noqa: E402
from settlement_recon.database import Base  # noqa: E402
from settlement_recon.services.reconciliation import load_reconciliation_config  # noqa: E402


# --- Bootloader Mock ---
# Prevent Bootloader from creating its own engine against the default URL
@pytest.fixture(autouse=True)
def mock_bootloader_db_check():
    from settlement_recon.boot import ServiceStatus

    async def mock_check():
        return ServiceStatus("database", "ok", "Mocked for tests", 0.0)

    with patch("settlement_recon.boot.Bootloader._check_database", new=mock_check):
        yield


@pytest.fixture(autouse=True)
def reset_reconciliation_config():
    """Rebuild the cached matching config around each test."""
    load_reconciliation_config(force_reload=True)
    yield
    load_reconciliation_config(force_reload=True)


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh SQLite database file per test, schema created from metadata.

    Services commit and roll back on their own, so isolation comes from a new
    file rather than an outer transaction.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'recon.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine):
    """Route get_db (and therefore API handlers) to the test engine."""
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(maker)
    yield maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """Async test client against the app; lifespan is not run."""
    from settlement_recon.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client_instance:
        yield client_instance
