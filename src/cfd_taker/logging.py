"""Log output for the taker: stdout plus a daily file under ``logs/``."""

import logging
import sys
from datetime import date
from pathlib import Path

PACKAGE_LOGGER = "cfd_taker"
DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO/DEBUG; only their problems are interesting
THIRD_PARTY_LOGGERS = ("aiohttp", "websockets", "asyncio")


def log_file_for(log_dir: Path, day: date | None = None) -> Path:
    """Path of the taker log for ``day`` (today by default)."""
    return log_dir / f"taker_{(day or date.today()):%Y%m%d}.log"


def setup_logging(
    level: int = logging.INFO,
    log_dir: Path | None = DEFAULT_LOG_DIR,
) -> logging.Logger:
    """Attach handlers to the ``cfd_taker`` logger.

    Calling it again only updates the level; handlers are added once.

    Args:
        level: Level of the package logger
        log_dir: Directory for the daily log file, None for stdout only

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file_for(log_dir), encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger below ``cfd_taker`` for code living outside the package, such as main.py."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
