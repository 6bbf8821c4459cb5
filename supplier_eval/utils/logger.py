"""
Logging infrastructure for the evaluation engine.

Provides:
- Structured log lines with millisecond timestamps
- Console and optional file output
- A single format for our modules and third-party loggers (httpx, pymysql)

Modules log through logging.getLogger(__name__); entry points call
configure_logging() once.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from supplier_eval.config import get_log_dir

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S,%f"


class MillisecondsFormatter(logging.Formatter):
    """Custom formatter that includes milliseconds and aligns log levels."""

    def formatTime(self, record, datefmt=None):  # noqa: N802 - must match parent class method name
        """Override formatTime to include milliseconds."""
        ct = datetime.fromtimestamp(record.created)
        if datefmt and "%f" in datefmt:
            s = ct.strftime(datefmt.replace(",%f", ""))
            return s + f",{int(record.msecs):03d}"
        elif datefmt:
            return ct.strftime(datefmt)
        else:
            return ct.strftime("%Y-%m-%d %H:%M:%S") + f",{int(record.msecs):03d}"


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the root logger with the unified format.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file name
        log_dir: Directory for log files (defaults to SUPPLIER_EVAL_LOG_DIR or logs/)

    Returns:
        The configured root logger
    """
    level = getattr(logging, log_level.upper())
    formatter = MillisecondsFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = log_dir or get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / log_file)
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.info(f"Logging to file: {log_dir / log_file}")

    # Third-party loggers propagate to root; keep the HTTP client quiet below WARNING
    for lib_name in ["httpx", "httpcore", "pymysql"]:
        lib_logger = logging.getLogger(lib_name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True
        lib_logger.setLevel(max(level, logging.WARNING))

    return root_logger


def format_fields(message: str, **kwargs) -> str:
    """Append key=value pairs to a message: 'Saved [id=3 tier=A]'."""
    if not kwargs:
        return message
    formatted_data = " ".join(f"{k}={v}" for k, v in kwargs.items())
    return f"{message} [{formatted_data}]"
