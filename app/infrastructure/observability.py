"""Structured Logging — JSON log lines carrying cart, need and Rye identifiers.

Invariants:
    - Every line has timestamp, level, logger and message
    - Known extras (cart_id, rye_cart_id, need_ref, order_id, ...) are copied
      when a call site passes them; ids are rendered as strings
    - setup_logging is idempotent: repeated lifespans (tests, reload) replace
      the handler instead of stacking another one
"""

import json
import logging
from datetime import datetime, timezone

HANDLER_NAME = "giftdrive"

_EXTRA_FIELDS = (
    "cart_id", "rye_cart_id", "need_ref", "order_id", "rye_order_id",
    "error_code", "operation", "attempt", "path", "event_type",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _json_value(value):
    if isinstance(value, (int, float, bool)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = _json_value(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the single root handler; fmt is "json" or anything else for text."""
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # httpx logs every Rye request at INFO; keep it for debugging only
    logging.getLogger("httpx").setLevel(logging.WARNING)
