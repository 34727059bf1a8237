"""Logging setup for the importer's command-line entry points."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "ledger_importer"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Marks handlers installed by setup_logging
_INSTALLED_FLAG = "_ledger_importer_installed"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Route the ``ledger_importer`` loggers to stderr and, optionally, a file.

    A repeated call replaces the handlers of the previous one; handlers
    added by anyone else stay attached.

    Args:
        level: Console level, as a number or a name such as ``"DEBUG"``
        log_file: Rotating log file; it always receives DEBUG records
        log_format: Format of console lines

    Returns:
        The package logger
    """
    if isinstance(level, str):
        level = level_from_name(level)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in [h for h in logger.handlers if getattr(h, _INSTALLED_FLAG, False)]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(f"{log_format} [%(filename)s:%(lineno)d]")
        )
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _INSTALLED_FLAG, True)
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if log_file else level)
    return logger


def level_from_name(name: str) -> int:
    """Translate a configured level name such as ``"debug"``; unknown names mean INFO."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO
