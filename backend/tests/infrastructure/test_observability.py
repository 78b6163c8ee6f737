"""Structured logging — JSON lines with device and rate-limit context."""

import json
import logging

from ganamos.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        "ganamos.services.coin_ledger", logging.INFO, __file__, 1,
        "Spend %s already processed", ("s-1",), None,
    )
    record.__dict__.update(extra)
    return record


def test_formats_known_extras_as_strings():
    line = json.loads(JSONFormatter().format(
        _record(device_id=42, spend_id="s-1", preset="DEVICE_SYNC", color="red"),
    ))
    assert line["message"] == "Spend s-1 already processed"
    assert line["level"] == "INFO"
    assert line["device_id"] == "42"
    assert line["spend_id"] == "s-1"
    assert line["preset"] == "DEVICE_SYNC"
    assert "color" not in line


def test_setup_logging_replaces_its_own_handler():
    before = list(logging.root.handlers)
    try:
        setup_logging("DEBUG", "json")
        setup_logging("WARNING", "text")
        ours = [h for h in logging.root.handlers if h.get_name() == "ganamos"]
        assert len(ours) == 1
        assert not isinstance(ours[0].formatter, JSONFormatter)
        assert logging.root.level == logging.WARNING
    finally:
        for handler in list(logging.root.handlers):
            if handler not in before:
                logging.root.removeHandler(handler)
        logging.root.setLevel(logging.WARNING)
