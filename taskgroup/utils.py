"""
Logging setup for the CLI and library users.

Everything in the package logs below the "taskgroup" logger, so
configuring that one logger covers runners, executors and handlers.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "taskgroup"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# attributes every LogRecord has; anything else came in through `extra=`
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

err_console = Console(stderr=True)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, including fields passed via `extra=`."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _file_handler(log_file: Path, log_format: str) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(StructuredFormatter() if log_format == "structured" else logging.Formatter(TEXT_FORMAT))
    return handler


def _console_handler(log_format: str) -> logging.Handler:
    if log_format == "pretty":
        return RichHandler(console=err_console, rich_tracebacks=True, show_time=False, show_path=False)
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    log_format: str = "structured",
    console_output: bool = True,
) -> logging.Logger:
    """
    Configure the "taskgroup" logger, replacing handlers set up earlier.

    Args:
        log_file: Also write to this file (parent dirs are created)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "structured" for JSON lines, "pretty" for rich console output
        console_output: Log to stderr as well
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        logger.addHandler(_file_handler(log_file, log_format))
    if console_output:
        logger.addHandler(_console_handler(log_format))

    return logger
