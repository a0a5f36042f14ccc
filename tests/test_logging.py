"""Tests for the structured logging system (bullion_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from bullion_kernel.domain.values import Direction
from bullion_kernel.exceptions import OverSettlementError
from bullion_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "bullion_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("settlement_recorded", extra={"entry_seq": 42, "mode": "METAL"})

        record = _parse_log(stream)
        assert record["entry_seq"] == 42
        assert record["mode"] == "METAL"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        account_id = uuid4()
        LogContext.set(correlation_id="abc-123", account_id=account_id)
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["account_id"] == str(account_id)

    def test_decimal_enum_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "typed", extra={"weight": Decimal("9.160"), "direction": Direction.LEND, "ref": uid}
        )

        record = _parse_log(stream)
        assert record["weight"] == "9.160"
        assert record["direction"] == "LEND"
        assert record["ref"] == str(uid)

    def test_ledger_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise OverSettlementError("ob-1", "CASH", Decimal("1000"), Decimal("1200"), Decimal("1.00"))
        except OverSettlementError:
            get_logger("test").error("settle_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "OverSettlementError"
        assert record["exc_code"] == "OVER_SETTLEMENT"
        assert record["exc_dimension"] == "CASH"
        assert record["exc_attempted"] == "1200"
        assert "traceback" in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "account_id" not in record

    def test_level_filters(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second")
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(event_id="nope")

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(account_id="outer")
        with LogContext.bind(account_id="inner", obligation_id="o-1"):
            assert LogContext.get_all() == {"account_id": "inner", "obligation_id": "o-1"}
        assert LogContext.get_all() == {"account_id": "outer"}

    def test_bind_skips_none(self):
        LogContext.set(settlement_id="s-1")
        with LogContext.bind(settlement_id=None):
            assert LogContext.get_all()["settlement_id"] == "s-1"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("bullion_kernel").handlers) == 1

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("services.ledger").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "bullion_kernel.services.ledger"


class TestLedgerEvents:
    def test_write_binds_account_context(self, ledger, vendor, captured_logs):
        ledger.add_obligation(vendor.id, Direction.BORROW, manual_cash="500")

        created = [r for r in captured_logs() if r["message"] == "obligation_created"]
        assert len(created) == 1
        assert created[0]["account_id"] == str(vendor.id)
        assert Decimal(created[0]["vector"]["cash"]) == Decimal("500")
        assert isinstance(created[0]["entry_seq"], int)
