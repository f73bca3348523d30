"""Logging setup for the application.

``setup_logging`` configures the root logger (or a named one) with a
console handler and an optional file handler. It only acts on the first call, so the CLI and tests
can both call it without stacking handlers.
"""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Configure the root logger, or the named one.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``). Case insensitive.
    logfile : Optional[str]
        Path to a file to log messages to. If omitted, no file handler is
        added.
    logger_name : Optional[str]
        Logger to configure instead of the root logger.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
