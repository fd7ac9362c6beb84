"""Session workspaces: the files shared by the parent and a UI process.

Single-question mode uses files in the scratch directory:

    prompt-response-<id>.txt    answer slot, truncated before launch
    prompt-heartbeat-<id>.txt   rewritten by the UI while it runs
    prompt-options-<id>.json    launch payload too long for the command line

Intensive-chat mode uses one directory per session:

    intensive-chat-<id>/
        question.json           pending question (written by parent, deleted by UI)
        response-<qid>.txt      answer to question <qid> (written by UI, deleted by parent)
        heartbeat.txt           rewritten by the UI while it runs
        close-session.txt       sentinel; its existence tells the UI to exit
        prompt-options-<id>.json  launch payload too long for the command line

Response files hold an Answer envelope (JSON), so an explicitly empty answer
is still non-empty content and cannot be confused with the truncated slot.
"""

from __future__ import annotations

import secrets
import shutil
import uuid
from pathlib import Path

import anyio
from pydantic import BaseModel, Field, ValidationError

from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import MalformedQueueFile, WorkspaceError
from interactive_prompt.mailbox import FileMailbox

logger = get_logger(__name__)

QUEUE_FILE = "question.json"
HEARTBEAT_FILE = "heartbeat.txt"
CLOSE_FILE = "close-session.txt"
RESPONSE_PREFIX = "response-"
RESPONSE_SUFFIX = ".txt"
CHAT_DIR_PREFIX = "intensive-chat-"

TIMEOUT_SENTINEL = "__TIMEOUT__"
"""Answer text a UI writes when its own countdown runs out."""


def new_session_id() -> str:
    """Return a fresh opaque session token."""
    return secrets.token_hex(8)


def options_path(directory: Path, session_id: str) -> Path:
    """Side file holding an oversized launch payload."""
    return Path(directory) / f"prompt-options-{session_id}.json"


class Question(BaseModel):
    """One question in an intensive chat session."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    options: list[str] | None = None
    """Choices offered to the human, in display order."""

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def parse(cls, raw: str, path: Path) -> Question:
        """Parse queue file content.

        Raises:
            MalformedQueueFile: If the content is not a valid question.
        """
        try:
            question = cls.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedQueueFile(path, str(e)) from e
        if not question.id or not question.text:
            raise MalformedQueueFile(path, "question id and text must be non-empty")
        return question


class Answer(BaseModel):
    """Envelope of a response file."""

    answer: str

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def parse(cls, raw: str, path: Path) -> Answer:
        """Parse response file content.

        Raises:
            MalformedQueueFile: If the content is not an answer envelope.
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedQueueFile(path, str(e)) from e


class AnswerMailbox(FileMailbox):
    """Response slot that only accepts Answer envelopes."""

    def validate(self, content: str) -> None:
        Answer.parse(content, self.path)

    async def write_answer(self, answer: str | None) -> None:
        """Write an answer, or the timeout sentinel when answer is None."""
        await self.write(Answer(answer=TIMEOUT_SENTINEL if answer is None else answer).to_json())


class QuestionWorkspace:
    """Response and heartbeat files for a single-question exchange."""

    def __init__(self, scratch_dir: Path, session_id: str | None = None) -> None:
        self.session_id = session_id or new_session_id()
        self.scratch_dir = Path(scratch_dir)
        self.response_path = self.scratch_dir / f"prompt-response-{self.session_id}.txt"
        self.heartbeat_path = self.scratch_dir / f"prompt-heartbeat-{self.session_id}.txt"
        self.options_path = options_path(self.scratch_dir, self.session_id)
        self.response = AnswerMailbox(self.response_path)
        self._cleaned = False

    async def prepare(self) -> None:
        """Create the empty response slot before the UI is launched.

        Raises:
            WorkspaceError: If the scratch directory is not writable.
        """
        try:
            await anyio.Path(self.scratch_dir).mkdir(parents=True, exist_ok=True)
            await self.response.reset()
        except OSError as e:
            raise WorkspaceError(f"Cannot prepare response file {self.response_path}: {e}") from e

    async def cleanup(self) -> None:
        """Delete every file of the exchange. Safe to call more than once."""
        if self._cleaned:
            return
        self._cleaned = True
        await self.response.discard()
        await FileMailbox(self.heartbeat_path).discard()
        await FileMailbox(self.options_path).discard()


class ChatWorkspace:
    """Directory backing one intensive chat session."""

    def __init__(self, root: Path, session_id: str) -> None:
        self.root = Path(root)
        self.session_id = session_id
        self.queue = FileMailbox(self.root / QUEUE_FILE)
        self.heartbeat_path = self.root / HEARTBEAT_FILE
        self.close_path = self.root / CLOSE_FILE
        self._removed = False

    @classmethod
    async def create(cls, scratch_dir: Path) -> ChatWorkspace:
        """Allocate a fresh session directory.

        Raises:
            WorkspaceError: If the directory cannot be created.
        """
        session_id = new_session_id()
        root = Path(scratch_dir) / f"{CHAT_DIR_PREFIX}{session_id}"
        try:
            await anyio.Path(root).mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise WorkspaceError(f"Cannot create session directory {root}: {e}") from e
        logger.debug("Created chat workspace %s", root)
        return cls(root, session_id)

    def response_path(self, question_id: str) -> Path:
        return self.root / f"{RESPONSE_PREFIX}{question_id}{RESPONSE_SUFFIX}"

    def response(self, question_id: str) -> AnswerMailbox:
        return AnswerMailbox(self.response_path(question_id))

    async def discard_stale_responses(self, keep: str | None = None) -> list[str]:
        """Delete responses to earlier questions that were answered too late.

        Returns:
            Question IDs whose responses were discarded.
        """
        discarded: list[str] = []
        root = anyio.Path(self.root)
        if not await root.exists():
            return discarded
        async for entry in root.glob(f"{RESPONSE_PREFIX}*{RESPONSE_SUFFIX}"):
            question_id = entry.name[len(RESPONSE_PREFIX) : -len(RESPONSE_SUFFIX)]
            if question_id == keep:
                continue
            await FileMailbox(Path(entry)).discard()
            discarded.append(question_id)
        if discarded:
            logger.info("Discarded late responses in %s: %s", self.session_id, discarded)
        return discarded

    async def request_close(self) -> None:
        """Write the close sentinel."""
        try:
            await FileMailbox(self.close_path).write("")
        except OSError as e:
            logger.warning("Failed to write close sentinel for %s: %s", self.session_id, e)

    async def remove(self) -> None:
        """Delete the session directory. Safe to call more than once."""
        if self._removed:
            return
        self._removed = True
        await anyio.to_thread.run_sync(shutil.rmtree, self.root, True)
        logger.debug("Removed chat workspace %s", self.root)
