"""Fixtures for interactive_prompt tests."""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from fakes import FakeLauncher, UIBehavior
from interactive_prompt._config import PromptSettings


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Clean INTERACTIVE_PROMPT_* environment variables before and after test."""
    saved_vars: dict[str, str] = {}
    for key in list(os.environ.keys()):
        if key.startswith("INTERACTIVE_PROMPT_"):
            saved_vars[key] = os.environ.pop(key)

    yield

    for key in list(os.environ.keys()):
        if key.startswith("INTERACTIVE_PROMPT_"):
            del os.environ[key]
    for key, value in saved_vars.items():
        os.environ[key] = value


@pytest.fixture
def settings(tmp_path: Path) -> PromptSettings:
    """Settings with short intervals and a private scratch directory."""
    return PromptSettings(
        default_timeout=2,
        heartbeat_interval=0.05,
        stale_threshold=0.4,
        check_interval=0.1,
        startup_grace=0.6,
        deadline_margin=0.3,
        poll_interval=0.01,
        sweep_interval=0.1,
        close_grace=0.2,
        terminate_grace=0.1,
        cleanup_delay=0.05,
        startup_delay=0.0,
        terminal="direct",
        scratch_dir=tmp_path / "scratch",
    )


@pytest.fixture
def make_launcher(settings: PromptSettings) -> Generator[Callable[[UIBehavior], FakeLauncher], None, None]:
    """Factory for fake launchers; leftover UI tasks are cancelled afterwards."""
    launchers: list[FakeLauncher] = []

    def factory(behavior: UIBehavior) -> FakeLauncher:
        launcher = FakeLauncher(settings, behavior)
        launchers.append(launcher)
        return launcher

    yield factory

    for launcher in launchers:
        launcher.shutdown()
