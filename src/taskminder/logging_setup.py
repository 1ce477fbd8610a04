# src/taskminder/logging_setup.py

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the REPL is waiting for input.

    Our own loggers always pass. APScheduler job chatter ("Added job",
    "Running job") is hidden unless WARNING+, anything else unless ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "taskminder" or name.startswith("taskminder."):
            return True
        if name.startswith("apscheduler"):
            return record.levelno >= logging.WARNING
        return record.levelno >= logging.ERROR


def log_file_name(app_name: str) -> str:
    """'My Tasks' -> 'my-tasks.log'; falls back to taskminder.log."""
    slug = re.sub(r"[^a-z0-9]+", "-", (app_name or "").strip().lower()).strip("-")
    return f"{slug or 'taskminder'}.log"


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskminder",
    app_name: str = "taskminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console handler (filtered) plus a rotating file log named after the app.

    Call once, before the first logger.info. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name(app_name)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    # Reminder history survives restarts; old runs rotate out.
    file_handler = RotatingFileHandler(
        str(log_file), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
