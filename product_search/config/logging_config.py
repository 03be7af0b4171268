# product_search/config/logging_config.py

"""Per-run timestamped logging configuration for product_search.

Each process start creates a dedicated log file inside ``logs/``,
named with the launch timestamp (e.g. ``logs/run_20260214_153045.log``).
All ``product_search.*`` loggers route through this file handler so
that the orchestrator, the aggregation engine, every source adapter
and the caches land in the same per-run log.

Noisy components can be quietened per logger through
``Settings.LOG_LEVELS`` (env ``LOG_LEVELS=cache=INFO,vector=WARNING``).
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from product_search.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def apply_component_levels(levels: dict[str, str]) -> dict[str, int]:
    """Set levels on ``product_search.<component>`` loggers.

    Unknown level names are reported and skipped.  Returns the
    levels that were applied.
    """
    applied: dict[str, int] = {}
    for component, name in levels.items():
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            logging.getLogger("product_search").warning(
                "Ignoring unknown log level %r for %s", name, component
            )
            continue
        logging.getLogger(f"product_search.{component}").setLevel(level)
        applied[component] = level
    return applied


def setup_logging() -> Path:
    """Initialise the root ``product_search`` logger for the current run.

    Returns:
        The :class:`~pathlib.Path` to the log file created for this run.
    """
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"run_{timestamp}.log"

    root_logger = logging.getLogger("product_search")
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, CLI re-entry) keep the first handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    apply_component_levels(Settings.LOG_LEVELS)

    root_logger.info("Logging initialised, log file: %s", log_file)

    return log_file
