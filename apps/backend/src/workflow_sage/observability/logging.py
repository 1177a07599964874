"""Logging setup: readable lines for development, JSON lines for production."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Final

_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_EXTRA_KEYS: Final[tuple[str, ...]] = (
    "conversation_id",
    "workflow_id",
    "tool",
    "tool_call_id",
    "model",
    "round",
    "error_code",
    "path",
    "status",
)

_CONFIGURED: bool = False


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with request-scoped extras when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; later calls only adjust the level.
    """
    global _CONFIGURED

    resolved = getattr(logging, level.upper(), logging.INFO)
    package_logger = logging.getLogger("workflow_sage")
    package_logger.setLevel(resolved)

    if _CONFIGURED:
        return

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.propagate = False
    _CONFIGURED = True
