"""Outcome values returned to callers of the prompt protocol.

Every path through a single question or a chat ask ends in exactly one
Outcome. The kinds keep "the human answered with nothing" apart from "the
human was never reached":

- ANSWER: the human submitted text (trailing whitespace trimmed).
- EMPTY: the human explicitly submitted an empty answer.
- TIMEOUT: the deadline elapsed, or the UI reported its own countdown expiring.
- DEAD: the UI process died, its window was closed, or the session ended.
- UNKNOWN_SESSION: the session handle does not name an active session.
- UNREACHABLE: the UI could not be launched or the exchange failed internally.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from interactive_prompt.exceptions import MalformedQueueFile
from interactive_prompt.waiter import Resolution, WaitResult
from interactive_prompt.workspace import TIMEOUT_SENTINEL, Answer


class OutcomeKind(str, Enum):
    """Kinds of results a prompt can produce."""

    ANSWER = "answer"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    DEAD = "dead"
    UNKNOWN_SESSION = "unknown_session"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class Outcome:
    """Result of asking the human one question."""

    kind: OutcomeKind
    answer: str | None = None
    detail: str | None = None

    @property
    def answered(self) -> bool:
        """True if the human submitted something, including an empty answer."""
        return self.kind in (OutcomeKind.ANSWER, OutcomeKind.EMPTY)

    @classmethod
    def from_response(cls, raw: str) -> Outcome:
        """Classify the content of a response file (an Answer envelope)."""
        try:
            text = Answer.parse(raw, Path("<response>")).answer.rstrip()
        except MalformedQueueFile as e:
            return cls(OutcomeKind.UNREACHABLE, detail=str(e))
        if text == TIMEOUT_SENTINEL:
            return cls(OutcomeKind.TIMEOUT, detail="countdown expired in UI")
        if not text:
            return cls(OutcomeKind.EMPTY, answer="")
        return cls(OutcomeKind.ANSWER, answer=text)

    @classmethod
    def from_wait(cls, result: WaitResult) -> Outcome:
        """Map a waiter resolution onto an outcome."""
        if result.resolution is Resolution.ANSWERED:
            return cls.from_response(result.content or "")
        if result.resolution is Resolution.TIMED_OUT:
            return cls(OutcomeKind.TIMEOUT, detail=result.detail)
        if result.resolution in (Resolution.PROCESS_DIED, Resolution.CLOSED):
            return cls(OutcomeKind.DEAD, detail=result.detail)
        return cls(OutcomeKind.UNREACHABLE, detail=result.detail)

    @classmethod
    def timeout(cls, detail: str | None = None) -> Outcome:
        return cls(OutcomeKind.TIMEOUT, detail=detail)

    @classmethod
    def dead(cls, detail: str | None = None) -> Outcome:
        return cls(OutcomeKind.DEAD, detail=detail)

    @classmethod
    def unknown_session(cls, session_id: str) -> Outcome:
        return cls(OutcomeKind.UNKNOWN_SESSION, detail=f"unknown session {session_id}")

    @classmethod
    def unreachable(cls, detail: str | None = None) -> Outcome:
        return cls(OutcomeKind.UNREACHABLE, detail=detail)
