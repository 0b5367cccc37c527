"""Logging configuration and utilities."""

import logging
import sys
from pathlib import Path
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from typing import Optional, Union


def resolve_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """
    Convert a level name ("DEBUG", "info") or number into a logging level.

    Args:
        level: Level name or number
        default: Level used when the value is missing or unknown

    Returns:
        Logging level number
    """
    if level is None:
        return default
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), default)


def setup_logger(
    name: str = "payout_bot",
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_filename: Optional[str] = None
) -> logging.Logger:
    """
    Configure and return the package logger with daily rotation support.

    Every module logs through ``logging.getLogger(__name__)``, so configuring
    the ``payout_bot`` logger here covers the whole package.

    Args:
        name: Logger name
        level: Logging level
        log_dir: Log directory path (relative to project root, optional)
        log_filename: Base log filename without extension (optional, defaults to date format YYYY-MM-DD)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers to allow reconfiguration
    if logger.handlers:
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        # payout_bot/core/logger.py -> project root
        root_dir = Path(__file__).parent.parent.parent
        log_path = Path(log_dir)
        if not log_path.is_absolute():
            log_path = root_dir / log_dir
        log_path.mkdir(parents=True, exist_ok=True)

        if log_filename:
            log_file = log_path / f"{log_filename}.log"
        else:
            log_file = log_path / f"{datetime.now().strftime('%Y-%m-%d')}.log"

        # Rotate at midnight, keep 30 days
        file_handler = TimedRotatingFileHandler(
            filename=str(log_file),
            when='midnight',
            interval=1,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.suffix = "%Y-%m-%d"

        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file.absolute()}")

    # Handlers live on the package logger only
    logger.propagate = False

    return logger
