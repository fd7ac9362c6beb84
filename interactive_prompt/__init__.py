"""interactive-prompt: ask a human questions from a headless process through a detached terminal window."""

import importlib.metadata

from interactive_prompt._config import PromptSettings, get_settings
from interactive_prompt.exceptions import (
    InactiveSession,
    InteractivePromptError,
    MalformedQueueFile,
    SlotOccupied,
    SpawnFailure,
    UnknownSession,
    WorkspaceError,
)
from interactive_prompt.outcome import TIMEOUT_SENTINEL, Outcome, OutcomeKind
from interactive_prompt.registry import SessionInfo, SessionRegistry, SessionState
from interactive_prompt.single import request_user_input

__all__ = [
    "TIMEOUT_SENTINEL",
    "InactiveSession",
    "InteractivePromptError",
    "MalformedQueueFile",
    "Outcome",
    "OutcomeKind",
    "PromptSettings",
    "SessionInfo",
    "SessionRegistry",
    "SessionState",
    "SlotOccupied",
    "SpawnFailure",
    "UnknownSession",
    "WorkspaceError",
    "__version__",
    "get_settings",
    "request_user_input",
]

try:
    __version__ = importlib.metadata.version("interactive-prompt")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"  # Fallback for development mode
