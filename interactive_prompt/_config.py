"""Configuration management using pydantic-settings."""

from __future__ import annotations

import sys
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TerminalPreference = Literal["auto", "direct", "terminal-app", "x-terminal", "windows-console"]


def _default_ui_command() -> list[str]:
    return [sys.executable, "-m", "interactive_prompt.ui"]


class PromptSettings(BaseSettings):
    """Timing, launch and tool settings with environment variable support.

    All settings can be overridden via environment variables with the prefix
    INTERACTIVE_PROMPT_. For example, INTERACTIVE_PROMPT_DEFAULT_TIMEOUT=60.
    """

    model_config = SettingsConfigDict(
        env_prefix="INTERACTIVE_PROMPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_timeout: int = Field(default=30, gt=0)
    """Seconds the human gets to answer when a call does not specify a timeout."""

    heartbeat_interval: float = Field(default=1.0, gt=0)
    """Seconds between heartbeat writes by the UI process."""

    stale_threshold: float = Field(default=3.0, gt=0)
    """Maximum heartbeat age in seconds before the UI is presumed dead."""

    check_interval: float = Field(default=1.5, gt=0)
    """Seconds between heartbeat checks by the parent."""

    startup_grace: float = Field(default=7.0, ge=0)
    """Seconds a heartbeat file may be missing right after launch."""

    deadline_margin: float = Field(default=5.0, ge=0)
    """Extra seconds added to the timeout before the hard deadline fires."""

    poll_interval: float = Field(default=0.1, gt=0)
    """Seconds between response-file polls."""

    sweep_interval: float = Field(default=5.0, gt=0)
    """Seconds between background liveness sweeps of chat sessions."""

    close_grace: float = Field(default=0.5, ge=0)
    """Seconds a chat UI gets to exit on its own after the close sentinel."""

    terminate_grace: float = Field(default=2.0, ge=0)
    """Seconds between SIGTERM and SIGKILL when terminating a process group."""

    cleanup_delay: float = Field(default=2.0, ge=0)
    """Seconds to wait before removing a closed chat workspace."""

    startup_delay: float = Field(default=0.5, ge=0)
    """Seconds to wait after launching a chat UI before returning its handle."""

    terminal: TerminalPreference = "auto"
    """How the UI window is opened."""

    scratch_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    """Directory holding question files and chat session directories."""

    ui_command: list[str] = Field(default_factory=_default_ui_command)
    """Command that starts the UI renderer; the encoded payload is appended."""

    disabled_tools: list[str] = Field(default_factory=list)
    """Tool names (or the "intensive_chat" group) that are not exposed."""

    ui_log_file: Path | None = None
    """File the UI process logs to; its terminal is reserved for the prompt."""

    @model_validator(mode="after")
    def _check_heartbeat_cadence(self) -> PromptSettings:
        if self.heartbeat_interval >= self.stale_threshold:
            raise ValueError("heartbeat_interval must be shorter than stale_threshold")
        if self.check_interval > self.stale_threshold / 2:
            raise ValueError("check_interval must be at most half of stale_threshold")
        return self


@lru_cache(maxsize=1)
def get_settings() -> PromptSettings:
    """Return the process-wide settings loaded from the environment."""
    return PromptSettings()
