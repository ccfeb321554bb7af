"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

import pytest

from authgate.core.logger import JSONFormatter, PhoneMaskFilter, configure_logging


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""

    # Act
    configure_logging("DEBUG")

    # Assert
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


def test_json_formatter_renders_extras() -> None:
    record = logging.LogRecord(
        name="authgate.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="sms.sent phone=%s",
        args=("138****0000",),
        exc_info=None,
    )
    record.request_id = "req-1"
    record.elapsed_ms = 1.5

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "sms.sent phone=138****0000"
    assert payload["request_id"] == "req-1"
    assert payload["elapsed_ms"] == 1.5


def test_request_id_is_echoed(client) -> None:
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_request_id_is_generated(client) -> None:
    resp = client.get("/api/v1/health")
    assert resp.headers["X-Request-ID"]


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (("13800000000", "482913"), "sms phone=138****0000 code=482913"),
        (("+8613800000000", "482913"), "sms phone=+86*******0000 code=482913"),
        (("138****0000", "482913"), "sms phone=138****0000 code=482913"),
    ],
)
def test_phone_mask_filter_masks_phone_numbers(args, expected) -> None:
    record = logging.LogRecord(
        name="authgate.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="sms phone=%s code=%s",
        args=args,
        exc_info=None,
    )

    assert PhoneMaskFilter().filter(record) is True
    assert record.getMessage() == expected
