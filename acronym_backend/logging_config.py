"""Logging utilities for the acronym backend.

Log records go to a file rotated at midnight. ``LOG_RETENTION_DAYS`` controls
how many rotated files are kept and may be ``0`` to disable rotation. When
``LOGGING_DISABLED`` is ``true`` logging is turned off and no file is written.
Bearer tokens, basic credentials and password fields are scrubbed from every
record before it reaches the file.

Example usage::

    from acronym_backend.logging_config import init_logging
    init_logging()
"""

from __future__ import annotations

import logging
import os
import re
import time
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


class SensitiveDataFilter(logging.Filter):
    """Strip credentials that request logging could otherwise leak."""

    _bearer_re = re.compile(r"Bearer\s+[A-Za-z0-9._-]+")
    _basic_re = re.compile(r"Basic\s+[A-Za-z0-9+/=]+")
    _password_re = re.compile(r"(\"?password\"?\s*[:=]\s*)(\"[^\"]*\"|\S+)", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        sanitized = self._bearer_re.sub("Bearer [REDACTED]", message)
        sanitized = self._basic_re.sub("Basic [REDACTED]", sanitized)
        sanitized = self._password_re.sub(r"\1[REDACTED]", sanitized)
        if sanitized != message:
            record.msg = sanitized
            record.args = ()
        return True


class RotatingLogHandler(TimedRotatingFileHandler):
    """Midnight rotation where ``backupCount=0`` means "never rotate"."""

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if self.backupCount <= 0:
            return False
        return super().shouldRollover(record)

    def doRollover(self) -> None:
        if self.backupCount <= 0:
            self.rolloverAt = self.computeRollover(int(time.time()))
            return
        super().doRollover()


def _retention_days() -> int:
    raw = os.environ.get("LOG_RETENTION_DAYS", "7")
    try:
        retention = int(raw)
    except ValueError as exc:
        raise ValueError("LOG_RETENTION_DAYS must be an integer") from exc
    if retention < 0:
        raise ValueError("LOG_RETENTION_DAYS cannot be negative")
    return retention


def init_logging() -> None:
    """Configure the root logger from ``LOG_PATH``, ``LOG_LEVEL`` and friends."""

    if os.environ.get("LOGGING_DISABLED", "").lower() == "true":
        logging.disable(logging.CRITICAL)
        logging.getLogger().handlers.clear()
        return

    log_path = Path(os.environ.get("LOG_PATH", "/tmp/acronym_backend.log"))
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handler = RotatingLogHandler(
        filename=str(log_path), when="midnight", backupCount=_retention_days()
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    )
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
