import json
import logging

import pytest
import structlog

from chainpilot.logging_config import bind_session, build_formatter


@pytest.fixture(autouse=True)
def clear_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


def _record(msg, **extra):
    record = logging.LogRecord("chainpilot.telemetry.timings", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_stdlib_extras_are_rendered():
    """Flow timing fields passed through ``extra=`` become JSON keys."""

    line = json.loads(build_formatter().format(
        _record("flow-timing", scope="watch", kind="transfer", latency_ms=12.5, ok=True, other="dropped")
    ))

    assert line["event"] == "flow-timing"
    assert line["level"] == "info"
    assert line["logger"] == "chainpilot.telemetry.timings"
    assert line["latency_ms"] == 12.5
    assert line["scope"] == "watch"
    assert "other" not in line
    assert "timestamp" in line


def test_bound_session_on_stdlib_records():
    bind_session("0x1111111111111111111111111111111111111111", 11155111)

    line = json.loads(build_formatter().format(_record("Dispatching prepareTransaction")))

    assert line["account"] == "0x1111111111111111111111111111111111111111"
    assert line["chain_id"] == 11155111
