"""Logging configuration for the ModelRelay SDK.

This module provides logging setup with:
- Colored console output using colorlog
- File logging with rotation
- Optional JSON structured logging
- Environment variable configuration support
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import colorlog
from pythonjsonlogger import json

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: str = "INFO",
    log_file_level: str = "DEBUG",
    log_dir: Path | str | None = None,
    log_file_name: str = "modelrelay.log",
    log_json_format: bool = False,
    log_max_bytes: int = 10485760,  # 10MB
    log_backup_count: int = 5,
    log_to_file: bool = True,
    force: bool = False,
) -> None:
    """Configure logging for the SDK.

    Sets up:
    - Colored console handler (INFO level by default)
    - Rotating file handler (DEBUG level by default), unless log_to_file is False
    - Optional JSON formatter for the file handler

    Args:
        log_level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file_level: File log level (typically DEBUG for full details)
        log_dir: Directory for log files (defaults to 'logs' in project root)
        log_file_name: Name of the log file
        log_json_format: Enable JSON structured logging format
        log_max_bytes: Maximum size of log file before rotation (default: 10MB)
        log_backup_count: Number of backup log files to keep (default: 5)
        log_to_file: Whether to attach the rotating file handler
        force: Force reconfiguration even if logging is already configured

    Environment Variables:
        MODELRELAY_LOG_LEVEL: Override console log level
        MODELRELAY_LOG_FILE_LEVEL: Override file log level
        MODELRELAY_LOG_DIR: Override log directory
        MODELRELAY_LOG_FILE_NAME: Override log file name
        MODELRELAY_LOG_JSON_FORMAT: Enable JSON logging (set to 'true' or '1')
        MODELRELAY_LOG_MAX_BYTES: Override max file size
        MODELRELAY_LOG_BACKUP_COUNT: Override backup count
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        return

    log_level = os.getenv("MODELRELAY_LOG_LEVEL", log_level).upper()
    log_file_level = os.getenv("MODELRELAY_LOG_FILE_LEVEL", log_file_level).upper()
    log_dir = os.getenv("MODELRELAY_LOG_DIR", log_dir)
    log_file_name = os.getenv("MODELRELAY_LOG_FILE_NAME", log_file_name)
    log_json_format = os.getenv("MODELRELAY_LOG_JSON_FORMAT", str(log_json_format)).lower() in ("true", "1", "yes")
    try:
        log_max_bytes = int(os.getenv("MODELRELAY_LOG_MAX_BYTES", log_max_bytes))
    except ValueError:
        log_max_bytes = 10485760
    try:
        log_backup_count = int(os.getenv("MODELRELAY_LOG_BACKUP_COUNT", log_backup_count))
    except ValueError:
        log_backup_count = 5

    numeric_level = getattr(logging, log_level, logging.INFO)
    numeric_file_level = getattr(logging, log_file_level, logging.DEBUG)

    # Handlers filter; the root logger passes everything through
    root_logger.setLevel(logging.DEBUG)

    if force:
        root_logger.handlers.clear()

    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s" + _LOG_FORMAT,
            datefmt=_DATE_FORMAT,
            reset=True,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
            style="%",
        )
    )
    root_logger.addHandler(console_handler)

    log_file_path = None
    if log_to_file:
        if log_dir is None:
            log_dir = Path(__file__).parent.parent / "logs"
        else:
            log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file_path = log_dir / log_file_name
        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=log_max_bytes,
            backupCount=log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_file_level)
        if log_json_format:
            file_handler.setFormatter(
                json.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s", datefmt=_DATE_FORMAT)
            )
        else:
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug(
        f"Logging configured: console={log_level}, file={log_file_level if log_to_file else 'off'}, "
        f"file_path={log_file_path}, json_format={log_json_format}"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)
