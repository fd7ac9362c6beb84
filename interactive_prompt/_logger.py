"""Centralized logging configuration for interactive-prompt.

Usage:
    from interactive_prompt._logger import get_logger

    logger = get_logger(__name__)
    logger.info("message")

Configuration:
    Environment variables:
    - INTERACTIVE_PROMPT_LOG_LEVEL: Global log level for all modules (default: WARNING)
    - INTERACTIVE_PROMPT_LOG_LEVEL_<MODULE>: Module-specific log level override

    Examples:
    - INTERACTIVE_PROMPT_LOG_LEVEL=INFO              # All logs at INFO level
    - INTERACTIVE_PROMPT_LOG_LEVEL_REGISTRY=DEBUG    # registry module at DEBUG
    - INTERACTIVE_PROMPT_LOG_LEVEL_UI=ERROR          # ui package at ERROR

The UI process has no usable stderr (it is either detached or owned by the
terminal widget), so it calls configure_file_logging() instead.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import ClassVar

LOGGER_NAME = "interactive_prompt"
ENV_PREFIX = "INTERACTIVE_PROMPT_LOG_LEVEL"

_configured_loggers: set[str] = set()


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for terminal output."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
        "GREEN": "\033[32m",
        "CYAN": "\033[36m",
    }

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        colored_timestamp = f"{self.COLORS['GREEN']}{timestamp}{self.COLORS['RESET']}"

        level = record.levelname
        colored_level = f"{self.COLORS.get(level, '')}{level:<8}{self.COLORS['RESET']}"

        name = record.name
        if name.startswith(f"{LOGGER_NAME}."):
            name = name[len(LOGGER_NAME) + 1 :]

        location = f"{self.COLORS['CYAN']}{name}:{record.funcName}:{record.lineno}{self.COLORS['RESET']}"
        colored_message = f"{self.COLORS.get(level, '')}{record.getMessage()}{self.COLORS['RESET']}"

        return f"{colored_timestamp} | {colored_level} | {location} - {colored_message}"


_PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_from_name(level_name: str | None) -> int | None:
    if not level_name:
        return None
    level = getattr(logging, level_name.upper(), None)
    return level if isinstance(level, int) else None


def _get_module_log_level(module_path: str) -> int | None:
    """Get module-specific log level from environment variable.

    For "ui.chat", checks INTERACTIVE_PROMPT_LOG_LEVEL_UI_CHAT and then
    INTERACTIVE_PROMPT_LOG_LEVEL_UI.
    """
    parts = module_path.upper().replace(".", "_").split("_")

    for i in range(len(parts), 0, -1):
        level = _level_from_name(os.getenv(f"{ENV_PREFIX}_{'_'.join(parts[:i])}"))
        if level is not None:
            return level

    return None


def _setup_root_logger() -> None:
    """Setup the package root logger with a stderr handler."""
    if LOGGER_NAME in _configured_loggers:
        return

    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(_level_from_name(os.getenv(ENV_PREFIX, "WARNING")) or logging.WARNING)
    root.propagate = False

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)  # Handler accepts all; logger filters

        if sys.stderr.isatty():
            handler.setFormatter(ColoredFormatter())
        else:
            handler.setFormatter(logging.Formatter(_PLAIN_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)

    _configured_loggers.add(LOGGER_NAME)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance for the given module.

    Args:
        name: Full module name (e.g., "interactive_prompt.waiter") or relative
            name (e.g., "waiter"). If None, returns the package root logger.

    Returns:
        A configured logger instance.
    """
    _setup_root_logger()

    if name is None:
        return logging.getLogger(LOGGER_NAME)

    full_name = name if name.startswith(LOGGER_NAME) else f"{LOGGER_NAME}.{name}"
    module_logger = logging.getLogger(full_name)

    if full_name not in _configured_loggers:
        relative_name = full_name[len(LOGGER_NAME) + 1 :] if full_name.startswith(f"{LOGGER_NAME}.") else full_name
        module_level = _get_module_log_level(relative_name)
        if module_level is not None:
            module_logger.setLevel(module_level)
        _configured_loggers.add(full_name)

    return module_logger


def configure_logging(verbose: bool = False) -> None:
    """Configure stderr logging for CLI usage.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO.
    """
    _setup_root_logger()
    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if verbose else logging.INFO)


def configure_file_logging(path: Path, level: int = logging.INFO) -> None:
    """Redirect all package logging to a file.

    Used by the UI process, whose terminal belongs to the prompt widget.

    Args:
        path: Log file to append to.
        level: Minimum log level.
    """
    root = logging.getLogger(LOGGER_NAME)
    root.handlers.clear()

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_PLAIN_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured_loggers.add(LOGGER_NAME)


_setup_root_logger()

logger = get_logger()

__all__ = ["LOGGER_NAME", "configure_file_logging", "configure_logging", "get_logger", "logger"]
