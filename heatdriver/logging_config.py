"""
Logging for the driver, the backend worker thread and the front ends.

Records go to stderr, so console output of the REPL stays clean on stdout,
and to a rotating file under ``data/logs`` unless another file is given.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .paths import LOGS_DIR, ensure_data_dirs

PACKAGE_LOGGER = "heatdriver"
DEFAULT_LOG_NAME = "heatdriver.log"
LOG_FORMAT = "%(asctime)s [%(threadName)s] %(name)s %(levelname)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def default_log_path() -> Path:
    ensure_data_dirs()
    return LOGS_DIR / DEFAULT_LOG_NAME


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Configures the 'heatdriver' namespace logger and returns it.

    Args:
        level: Logging level for the package and its handlers.
        log_file: File to log to; defaults to ``data/logs/heatdriver.log``.
        console: Also log to stderr.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Repeated setup (tests, restarting the app) replaces handlers instead of stacking them.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    path = Path(log_file) if log_file else default_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # matplotlib's font cache chatter is not ours.
    logging.getLogger("matplotlib").setLevel(max(level, logging.WARNING))

    logger.debug("Logging to %s", path)
    return logger
