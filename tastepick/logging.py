"""Logging setup: one pipe-separated line per record on stdout."""

import logging
import sys
from datetime import datetime, timezone

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "apscheduler", "aiosqlite")


class StructuredFormatter(logging.Formatter):
    """Formats records as ``timestamp | LEVEL | logger | message``."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        line = " | ".join(
            (
                self.formatTime(record),
                record.levelname.ljust(8),
                record.name,
                record.getMessage(),
            )
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO") -> None:
    """Route all logging to stdout at the given level.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        level: Level name; unknown names mean INFO
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
