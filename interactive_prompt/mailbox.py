"""Mailbox abstraction over the filesystem IPC channel.

A mailbox is a write-once slot: one side puts a complete value, the other
side waits until the slot holds non-empty content, reads it, and deletes it.
The waiter and the registry only talk to the Mailbox protocol, so the same
logic could run over a local socket or named pipe.

FileMailbox writes through a temporary sibling file and os.replace(), so a
reader never observes a partially written value. Content is read back as raw
UTF-8, line endings included. Subclasses validate content in validate();
content that fails validation is deleted and reads as absent.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

import anyio

from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import MalformedQueueFile, SlotOccupied

logger = get_logger(__name__)


@runtime_checkable
class Mailbox(Protocol):
    """Write-once slot shared by the parent and the UI process."""

    async def reset(self) -> None:
        """Create the slot empty, discarding any previous content."""
        ...

    async def put(self, content: str) -> None:
        """Write content; raises SlotOccupied if the slot already holds content."""
        ...

    async def peek(self) -> str | None:
        """Return the content, or None while the slot is absent or empty."""
        ...

    async def wait(self, poll_interval: float) -> str:
        """Block until the slot holds content and return it."""
        ...

    async def discard(self) -> None:
        """Delete the slot. Never raises."""
        ...

    async def occupied(self) -> bool:
        """True if the slot currently exists (empty or not)."""
        ...


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class FileMailbox:
    """Mailbox stored in a single file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileMailbox({str(self.path)!r})"

    async def reset(self) -> None:
        await anyio.to_thread.run_sync(_atomic_write, self.path, "")

    async def put(self, content: str) -> None:
        if await self.peek() is not None:
            raise SlotOccupied(self.path)
        await anyio.to_thread.run_sync(_atomic_write, self.path, content)

    async def write(self, content: str) -> None:
        """Overwrite the slot unconditionally."""
        await anyio.to_thread.run_sync(_atomic_write, self.path, content)

    def validate(self, content: str) -> None:
        """Raise MalformedQueueFile if content is not an acceptable value."""

    async def peek(self) -> str | None:
        try:
            data = await anyio.Path(self.path).read_bytes()
        except FileNotFoundError:
            return None
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Discarding undecodable mailbox content at %s", self.path)
            await self.discard()
            return None
        if not content:
            return None
        try:
            self.validate(content)
        except MalformedQueueFile as e:
            logger.warning("Discarding malformed mailbox content: %s", e)
            await self.discard()
            return None
        return content

    async def wait(self, poll_interval: float) -> str:
        while True:
            content = await self.peek()
            if content is not None:
                return content
            await anyio.sleep(poll_interval)

    async def discard(self) -> None:
        try:
            await anyio.Path(self.path).unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Failed to delete %s: %s", self.path, e)

    async def occupied(self) -> bool:
        return await anyio.Path(self.path).exists()
