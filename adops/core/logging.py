"""Ad Ops Hub - Structured JSON Logging.

Modules log through children of the ``adops`` logger; the single stdout
handler lives on that parent.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from adops.config import settings

ROOT_LOGGER = "adops"

# Keys accepted through ``extra={...}``
EXTRA_FIELDS = ("cache_key", "sheet", "identity", "duration_ms", "status_code")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _configure_root() -> None:
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """``get_logger("cache")`` -> the ``adops.cache`` logger."""
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
