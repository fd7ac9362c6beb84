"""Tests for interactive_prompt._logger module."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from interactive_prompt import _logger
from interactive_prompt._logger import LOGGER_NAME, configure_file_logging, get_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger(LOGGER_NAME)
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_get_logger_prefixes_package_name() -> None:
    assert get_logger("waiter").name == "interactive_prompt.waiter"
    assert get_logger("interactive_prompt.registry").name == "interactive_prompt.registry"
    assert get_logger().name == LOGGER_NAME


def test_module_level_override(monkeypatch) -> None:
    monkeypatch.setenv("INTERACTIVE_PROMPT_LOG_LEVEL_UI", "ERROR")
    _logger._configured_loggers.discard("interactive_prompt.ui.fresh_module")

    assert get_logger("interactive_prompt.ui.fresh_module").level == logging.ERROR


def test_configure_file_logging(tmp_path: Path, restore_root_logger) -> None:
    log_file = tmp_path / "ui.log"
    configure_file_logging(log_file)

    get_logger("ui.app").info("heartbeat started")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "heartbeat started" in log_file.read_text()
    assert all(isinstance(h, logging.FileHandler) for h in restore_root_logger.handlers)
