"""Structured request datalog.

Every incoming request is recorded as a single JSON line.  The line goes to a
primary sink (the application logger); when that sink raises, it is appended
to a local file instead so the audit trail is not lost.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from app.core.config import settings

logger = logging.getLogger(__name__)


class DatalogSink(Protocol):
    def write(self, line: str) -> None: ...


class LoggerSink:
    """Write datalog lines through a :class:`logging.Logger`."""

    def __init__(self, target: logging.Logger) -> None:
        self._target = target

    def write(self, line: str) -> None:
        self._target.info(line)


class FileSink:
    """Append datalog lines to a newline-delimited file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def write(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(line + "\n")


def build_record(action: str, method: Optional[str], market: Optional[str]) -> dict:
    return {
        "type": "datalog",
        "action": action,
        "method": (method or "GET").upper(),
        "market": market or settings.DEFAULT_MARKET,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def log_request(
    action: str,
    method: Optional[str] = None,
    market: Optional[str] = None,
    primary: Optional[DatalogSink] = None,
    fallback: Optional[DatalogSink] = None,
) -> str:
    """Record a request and return the JSON line that was written."""
    line = json.dumps(build_record(action, method, market))
    primary = primary or LoggerSink(logger)
    try:
        primary.write(line)
    except Exception:
        fallback = fallback or FileSink(settings.DATALOG_FALLBACK_PATH)
        fallback.write(line)
    return line
