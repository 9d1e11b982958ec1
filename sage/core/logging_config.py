"""
Logging setup shared by the API, the orchestrator and the adapters.

Records go to stdout at the configured level and, unless disabled, to a
per-day file under logs/ at DEBUG, so a conversation can be traced after
the fact even when the console is kept quiet.
"""
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SDKs that log every HTTP exchange at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "groq", "google", "grpc", "sqlalchemy.engine")

DEFAULT_LOG_DIR = Path(__file__).resolve().parents[2] / "logs"

_configured = False


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_to_file: bool = True
) -> logging.Logger:
    """
    Install the console and daily-file handlers on the root logger.

    Safe to call more than once; only the first call has an effect.

    Args:
        log_level: Console level name (DEBUG, INFO, WARNING, ...)
        log_dir: Where daily files go; defaults to logs/ next to the package
        log_to_file: Set False to log to the console only

    Returns:
        The root logger
    """
    global _configured

    root = logging.getLogger()
    if _configured:
        return root

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(logging.getLevelName(log_level.upper()))
    root.addHandler(console)

    log_file = None
    if log_to_file:
        directory = log_dir or DEFAULT_LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"sage_{date.today():%Y%m%d}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    root.setLevel(logging.DEBUG)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    root.debug(f"Logging ready: console={log_level.upper()}, file={log_file or 'disabled'}")
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)


class LoggerMixin:
    """Gives a class a `logger` named after its module and class."""

    @property
    def logger(self) -> logging.Logger:
        cls = type(self)
        return get_logger(f"{cls.__module__}.{cls.__qualname__}")
