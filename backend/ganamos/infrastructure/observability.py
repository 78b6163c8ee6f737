"""Structured Logging — one JSON object per line for API, device and voice traffic.

Invariants:
    - Every line carries timestamp, level, logger name, and message
    - Known context extras (device, user, post, game, spend, rate-limit key) are
      copied onto the line as strings when a call site passes them
    - LOG_FORMAT=json in production, plain text otherwise

Design Decisions:
    - Stdlib formatter, no logging dependency
    - setup_logging runs in the lifespan; calling it again swaps our handler
      instead of stacking a second one
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "device_id", "user_id", "game_id", "post_id", "spend_id",
    "rate_limit_key", "preset", "error_code", "path", "client_id", "mode",
)


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = str(val)
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    handler.set_name("ganamos")
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    for existing in list(logging.root.handlers):
        if existing.get_name() == "ganamos":
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
