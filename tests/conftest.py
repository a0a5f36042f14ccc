"""
Pytest fixtures for the bullion ledger test suite.

Provides:
- A fresh in-memory SQLite database per test (shared single connection)
- A file-backed SQLite database for tests that need real concurrent sessions
- The AccountLedgerService facade on a deterministic clock
- Sample vendor / shop accounts
- Captured structured logs

Environment Variables:
- LEDGER_TEST_DATABASE_URL: run the facade tests against another database
  (e.g. PostgreSQL).  Tables are dropped and recreated per test.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from bullion_kernel.db.engine import build_engine, create_tables, drop_tables
from bullion_kernel.domain.clock import DeterministicClock
from bullion_kernel.domain.dtos import AccountKind
from bullion_kernel.domain.purity import CalcMode
from bullion_kernel.domain.rules import LedgerRules
from bullion_kernel.domain.values import MetalRestriction
from bullion_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from bullion_kernel.services.ledger_service import AccountLedgerService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")
    config.addinivalue_line("markers", "slow_locks: mark test as potentially waiting for DB locks")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture bullion_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.settle(...)
            logs = captured_logs()
            assert any(r["message"] == "settlement_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("bullion_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("LEDGER_TEST_DATABASE_URL", "sqlite://")


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh schema per test."""
    eng = build_engine(get_database_url())
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A bare session for selector and service tests; rolled back at the end."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def file_engine(tmp_path) -> Generator[Engine, None, None]:
    """
    File-backed SQLite database.

    Concurrency tests need independent connections; the in-memory
    database shares one connection across every session.
    """
    eng = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_session_factory(file_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=file_engine, expire_on_commit=False)


# =============================================================================
# Ledger facade
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def rules() -> LedgerRules:
    return LedgerRules()


@pytest.fixture
def ledger(session_factory, rules, deterministic_clock) -> AccountLedgerService:
    return AccountLedgerService(session_factory, rules=rules, clock=deterministic_clock)


@pytest.fixture
def file_ledger(file_session_factory, rules, deterministic_clock) -> AccountLedgerService:
    return AccountLedgerService(file_session_factory, rules=rules, clock=deterministic_clock)


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def vendor(ledger):
    """A vendor trading in both metals, touch mode by default."""
    return ledger.create_account("Lakshmi Refiners", actor_id=TEST_ACTOR_ID)


@pytest.fixture
def gold_shop(ledger):
    """A neighbour shop restricted to gold, wastage mode by default."""
    return ledger.create_account(
        "Sri Ganesh Jewellers",
        kind=AccountKind.SHOP,
        metal_restriction=MetalRestriction.GOLD,
        default_calc_mode=CalcMode.WASTAGE,
        actor_id=TEST_ACTOR_ID,
    )


@pytest.fixture
def silver_vendor(ledger):
    return ledger.create_account(
        "Chandi Traders",
        metal_restriction=MetalRestriction.SILVER,
        actor_id=TEST_ACTOR_ID,
    )
