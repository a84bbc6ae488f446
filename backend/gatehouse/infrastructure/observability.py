"""Structured Logging: JSON log records carrying participation identifiers.

Invariants:
    - Every record has timestamp, level, logger, message
    - Participation extras (event/user/gate/role/attempt/outcome) are copied when set;
      UUIDs and enums are rendered as strings
    - setup_logging is idempotent: calling it again swaps its own handler, never stacks
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum

PARTICIPATION_FIELDS = (
    "event_id", "user_id", "participant_id", "gate_id", "role",
    "outcome", "attempt", "error_code", "path",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _plain(value):
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    return str(value)


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: _plain(getattr(record, key))
            for key in PARTICIPATION_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the Gatehouse handler on the root logger."""
    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(
        JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT),
    )
    root.addHandler(_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return _handler
