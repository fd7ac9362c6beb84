"""Exception types for the detached prompt protocol.

Timeouts and dead UI processes are not exceptions: they are reported as
Outcome values. The exceptions below mark failures at module seams and are
converted to outcomes or messages before they reach an agent.
"""

from __future__ import annotations

from pathlib import Path


class InteractivePromptError(Exception):
    """Base exception for interactive-prompt."""


class SpawnFailure(InteractivePromptError):
    """The UI process could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to launch UI ({command}): {reason}")


class WorkspaceError(InteractivePromptError):
    """A session workspace could not be created."""


class UnknownSession(InteractivePromptError):
    """The session ID does not name a registered session."""

    def __init__(self, session_id: str, message: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message or f"Unknown session: {session_id}")


class InactiveSession(UnknownSession):
    """The session exists but has been closed or is shutting down."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, f"Session is no longer active: {session_id}")


class MalformedQueueFile(InteractivePromptError):
    """A question or response file could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed file {path}: {reason}")


class SlotOccupied(InteractivePromptError):
    """A write-once mailbox slot already holds content."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Mailbox slot already written: {path}")
