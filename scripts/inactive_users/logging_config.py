"""JSON-per-line logging for the job.

Rate-limit pauses are logged by ``inactive_users.rate_limit``; its level can
be set on its own so long throttled runs can be watched without per-user
noise from the scanner and executor.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

EXTRA_FIELDS = (
    "criteria", "user_id", "query", "total", "remaining", "limit", "delay_s", "processed",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            log_entry["error_type"] = type(exc).__name__
            # Management API failures carry the HTTP status
            status_code = getattr(exc, "status_code", None)
            if status_code is not None:
                log_entry["status_code"] = status_code
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, default=str)


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(level: str = "INFO", rate_limit_level: Optional[str] = None) -> None:
    """Send ``inactive_users.*`` records to stderr as JSON."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger("inactive_users")
    root.setLevel(_level(level))
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False

    rate_limit_logger = logging.getLogger("inactive_users.rate_limit")
    rate_limit_logger.setLevel(_level(rate_limit_level) if rate_limit_level else logging.NOTSET)
