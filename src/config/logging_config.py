# src/config/logging_config.py

"""Per-run timestamped logging configuration for pellet_tracker.

Each launch creates a dedicated log file inside ``logs/`` named with the
launch timestamp (e.g. ``logs/run_20261019_153045.log``).  Every
``pellet_tracker.*`` logger (normalization, matching, ledger, storage,
pipeline) routes through this file handler, so a single ingestion run can
be audited end to end: which listings were rejected, which fell back to a
sentinel value, and which were merged into an existing product.

The console only shows ``Settings.CONSOLE_LOG_LEVEL`` and above
(``WARNING`` unless ``PELLET_LOG_LEVEL`` or ``--verbose`` say otherwise).
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _file_handler(log_file: Path) -> logging.Handler:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _resolve_level(name: str | None) -> int:
    """Map a level name to its number, falling back to WARNING."""
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(console_level: str | None = None) -> Path:
    """Initialise the ``pellet_tracker`` logger for the current run.

    Args:
        console_level: Level name for the stderr handler; defaults to
            ``Settings.CONSOLE_LOG_LEVEL``.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"

    project_logger = logging.getLogger("pellet_tracker")
    project_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, batch re-runs) keep the first handlers
    if project_logger.handlers:
        return log_file

    level = _resolve_level(console_level or Settings.CONSOLE_LOG_LEVEL)
    project_logger.addHandler(_file_handler(log_file))
    project_logger.addHandler(_console_handler(level))

    project_logger.info(
        "Logging initialised: file %s, console level %s",
        log_file,
        logging.getLevelName(level),
    )
    return log_file
