# ragstore_chat/utils/logger.py
"""
Logging utilities.

Provides centralized logging configuration for the application.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ragstore_chat.config import config


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    console_output: bool = True,
) -> logging.Logger:
    """Set up a logger with file and/or console handlers.

    Parameters
    ----------
    name : str
        Logger name (typically __name__ of the calling module).
    log_file : Optional[str]
        Log file name. If None, only console logging is enabled.
    level : int
        Logging level (default: logging.INFO).
    console_output : bool
        Whether to also output to console (default: True).

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_file:
        logs_dir = Path(config.LOGS_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(logs_dir / log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def resolve_level(name: Optional[str], default: int = logging.INFO) -> int:
    """Map a level name such as ``"DEBUG"`` to its number.

    Unknown names fall back to ``default``.
    """
    level = logging.getLevelName((name or "").strip().upper())
    return level if isinstance(level, int) else default


def get_app_logger() -> logging.Logger:
    """Get the main application logger.

    Returns
    -------
    logging.Logger
        The main application logger with file and console output.
    """
    today: str = datetime.now().strftime(format="%Y-%m-%d")
    return setup_logger(
        name="ragstore_chat",
        log_file=f"app_{today}.log",
        level=resolve_level(config.LOG_LEVEL),
    )


def get_gateway_logger() -> logging.Logger:
    """Get the logger for Gemini File Search calls.

    Returns
    -------
    logging.Logger
        Logger for remote store operations.
    """
    today = datetime.now().strftime("%Y-%m-%d")
    return setup_logger(
        "ragstore_chat.gateway",
        log_file=f"gateway_{today}.log",
        level=resolve_level(config.GATEWAY_LOG_LEVEL),
    )


def get_session_logger() -> logging.Logger:
    """Get the session state machine logger.

    State transitions are logged at INFO; set ``SESSION_LOG_LEVEL=DEBUG``
    to also see staging and cache details.

    Returns
    -------
    logging.Logger
        Logger for state transitions and user actions.
    """
    today = datetime.now().strftime("%Y-%m-%d")
    return setup_logger(
        "ragstore_chat.session",
        log_file=f"session_{today}.log",
        level=resolve_level(config.SESSION_LOG_LEVEL),
    )
