# src/config/logging_config.py

"""Per-run timestamped logging configuration for price_watch.

Every process launch (a single ``run`` or a long-lived ``watch``) gets its
own log file inside ``logs/`` named after the launch time, for example
``logs/run_20261019_040000.log``.  All ``price_watch.*`` loggers share it.

Fetches run in worker threads, so the detailed format carries the thread
name to tell interleaved product checks apart.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER_NAME = "price_watch"

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    console_level: int = logging.WARNING,
    logs_dir: Path | None = None,
) -> Path:
    """Attach the file and console handlers to the ``price_watch`` logger.

    Args:
        console_level: Minimum level echoed to stderr.  ``--verbose`` on
            the CLI lowers this to INFO.
        logs_dir: Override for :attr:`Settings.LOGS_DIR`.

    Returns:
        The :class:`~pathlib.Path` of this run's log file.
    """
    directory = logs_dir or Settings.LOGS_DIR
    directory.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = directory / f"run_{stamp}.log"

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, watch restarts) keep the first handlers
    if root_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT)
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT)
    )

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
