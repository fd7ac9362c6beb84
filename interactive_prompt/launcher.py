"""Launching the UI renderer as a detached, visible process.

The UI gets its parameters as one argv element: the JSON payload, urlsafe
base64 encoded, so no shell or AppleScript quoting can break it. Payloads that
would make the command line too long go into a side file and the argument
becomes "@<path>".

Depending on the platform the renderer command is run directly (Windows gets a
new console of its own) or wrapped in a terminal-activation command that opens
a window (Terminal.app via osascript, x-terminal-emulator on Linux desktops).
Every spawn is detached: new session / process group, all stdio on DEVNULL.
"""

from __future__ import annotations

import asyncio
import base64
import os
import shlex
import shutil
import signal
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

import anyio
from pydantic import BaseModel, ValidationError

from interactive_prompt._config import PromptSettings, TerminalPreference
from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import MalformedQueueFile, SpawnFailure
from interactive_prompt.workspace import options_path

logger = get_logger(__name__)

MAX_ARG_PAYLOAD = 8000
"""Longest encoded payload passed inline; longer payloads use a side file."""

SIDE_FILE_MARKER = "@"


class UIOptions(BaseModel):
    """Launch parameters for the UI renderer."""

    mode: Literal["question", "chat"]
    session_id: str
    title: str
    prompt: str | None = None
    options: list[str] | None = None
    timeout: int
    show_countdown: bool = True
    heartbeat_interval: float = 1.0
    response_file: Path | None = None
    heartbeat_file: Path | None = None
    session_dir: Path | None = None
    log_file: Path | None = None


def encode_payload(options: UIOptions, side_dir: Path | None = None) -> str:
    """Encode launch options into a single quoting-proof argument.

    Args:
        options: Launch parameters.
        side_dir: Directory for the side file used by oversized payloads.

    Returns:
        Base64 payload, or "@<path>" pointing at a side file.
    """
    raw = options.model_dump_json(exclude_none=True)
    encoded = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")
    if len(encoded) <= MAX_ARG_PAYLOAD or side_dir is None:
        return encoded
    side_file = options_path(side_dir, options.session_id)
    side_file.write_text(raw, encoding="utf-8")
    return f"{SIDE_FILE_MARKER}{side_file}"


def decode_payload(arg: str) -> UIOptions:
    """Decode an argument produced by encode_payload().

    Raises:
        MalformedQueueFile: If the payload cannot be decoded or validated.
    """
    if arg.startswith(SIDE_FILE_MARKER):
        side_file = Path(arg[len(SIDE_FILE_MARKER) :])
        try:
            raw = side_file.read_text(encoding="utf-8")
        except OSError as e:
            raise MalformedQueueFile(side_file, str(e)) from e
        finally:
            side_file.unlink(missing_ok=True)
    else:
        try:
            raw = base64.urlsafe_b64decode(arg.encode("ascii")).decode("utf-8")
        except (ValueError, UnicodeError) as e:
            raise MalformedQueueFile(Path("<argv>"), f"invalid payload encoding: {e}") from e
    try:
        return UIOptions.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedQueueFile(Path("<argv>"), str(e)) from e


# -----------------------------------------------------------------------------
# Invocation building
# -----------------------------------------------------------------------------


class TerminalKind(str, Enum):
    """How a UI window is brought up."""

    DIRECT = "direct"
    TERMINAL_APP = "terminal-app"
    X_TERMINAL = "x-terminal"
    WINDOWS_CONSOLE = "windows-console"


@dataclass(frozen=True)
class Invocation:
    """A ready-to-spawn command line."""

    argv: list[str]
    kind: TerminalKind
    creationflags: int = 0


def resolve_terminal(preference: TerminalPreference, platform: str | None = None) -> TerminalKind:
    """Pick the window strategy for this platform.

    Args:
        preference: Configured preference; "auto" selects per platform.
        platform: Override for sys.platform (tests).
    """
    if preference != "auto":
        return TerminalKind(preference)

    platform = platform or sys.platform
    if platform == "darwin":
        return TerminalKind.TERMINAL_APP
    if platform == "win32":
        return TerminalKind.WINDOWS_CONSOLE
    has_display = bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
    if has_display and shutil.which("x-terminal-emulator"):
        return TerminalKind.X_TERMINAL
    return TerminalKind.DIRECT


def escape_applescript(text: str) -> str:
    """Escape text for an AppleScript string literal.

    Backslashes are doubled before quotes are escaped, otherwise an escaped
    quote's backslash would itself be doubled and end the literal.
    """
    return text.replace("\\", "\\\\").replace('"', '\\"')


def build_invocation(target: Sequence[str], kind: TerminalKind) -> Invocation:
    """Wrap the renderer command for the chosen window strategy."""
    command = list(target)
    if kind is TerminalKind.TERMINAL_APP:
        shell_command = f"exec {shlex.join(command)}; exit 0"
        script = f'tell application "Terminal" to do script "{escape_applescript(shell_command)}"'
        return Invocation(
            argv=["osascript", "-e", 'tell application "Terminal" to activate', "-e", script],
            kind=kind,
        )
    if kind is TerminalKind.X_TERMINAL:
        return Invocation(argv=["x-terminal-emulator", "-e", *command], kind=kind)
    if kind is TerminalKind.WINDOWS_CONSOLE:
        flags = getattr(subprocess, "CREATE_NEW_CONSOLE", 0) | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        return Invocation(argv=command, kind=kind, creationflags=flags)
    return Invocation(argv=command, kind=kind)


# -----------------------------------------------------------------------------
# Process handle
# -----------------------------------------------------------------------------


@dataclass
class UIProcess:
    """Handle for a launched UI process."""

    process: asyncio.subprocess.Process
    invocation: Invocation
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def pid(self) -> int:
        return self.process.pid or 0

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def is_running(self) -> bool:
        return self.process.returncode is None

    async def wait(self) -> int:
        return await self.process.wait()

    async def terminate(self, grace: float = 2.0) -> int | None:
        return await terminate_process_tree(self, grace)


def _signal_group(pid: int, sig: int) -> bool:
    try:
        os.killpg(pid, sig)
    except ProcessLookupError:
        return False
    except PermissionError as e:
        logger.warning("Not allowed to signal process group %s: %s", pid, e)
        return False
    return True


async def terminate_process_tree(handle: UIProcess, grace: float = 2.0) -> int | None:
    """Terminate a UI process and everything it spawned.

    POSIX sends SIGTERM to the process group, waits up to grace seconds, then
    sends SIGKILL. Windows uses taskkill /T /F. Already-exited processes are
    left alone.

    Returns:
        Exit code, or None if the process could not be reaped.
    """
    if not handle.is_running:
        return handle.returncode

    pid = handle.pid
    if pid <= 0:
        return None
    if sys.platform == "win32":
        await anyio.run_process(["taskkill", "/PID", str(pid), "/T", "/F"], check=False)
    elif _signal_group(pid, signal.SIGTERM):
        with anyio.move_on_after(grace):
            return await handle.wait()
        logger.info("UI process group %s ignored SIGTERM, sending SIGKILL", pid)
        _signal_group(pid, signal.SIGKILL)
    else:
        try:
            handle.process.terminate()
        except ProcessLookupError:
            return handle.returncode

    with anyio.move_on_after(grace):
        return await handle.wait()
    logger.warning("UI process %s did not exit after termination", pid)
    return None


# -----------------------------------------------------------------------------
# Launcher
# -----------------------------------------------------------------------------


class Launcher:
    """Spawns the UI renderer detached from the caller."""

    def __init__(self, settings: PromptSettings) -> None:
        self._settings = settings

    @property
    def terminal(self) -> TerminalKind:
        return resolve_terminal(self._settings.terminal)

    def side_dir(self, options: UIOptions) -> Path:
        """Where an oversized payload goes: inside the session's own workspace."""
        return options.session_dir or self._settings.scratch_dir

    def build(self, options: UIOptions) -> Invocation:
        if options.log_file is None and self._settings.ui_log_file is not None:
            options = options.model_copy(update={"log_file": self._settings.ui_log_file})
        payload = encode_payload(options, side_dir=self.side_dir(options))
        return build_invocation([*self._settings.ui_command, payload], self.terminal)

    async def launch(self, options: UIOptions) -> UIProcess:
        """Start the UI for the given options.

        Raises:
            SpawnFailure: If the process could not be started.
        """
        invocation = self.build(options)
        kwargs: dict[str, object] = {
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.DEVNULL,
            "stderr": asyncio.subprocess.DEVNULL,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = invocation.creationflags
        else:
            kwargs["start_new_session"] = True

        try:
            process = await asyncio.create_subprocess_exec(*invocation.argv, **kwargs)  # type: ignore[arg-type]
        except OSError as e:
            options_path(self.side_dir(options), options.session_id).unlink(missing_ok=True)
            raise SpawnFailure(invocation.argv[0], str(e)) from e

        logger.info(
            "Launched %s UI for session %s (pid=%s, via %s)",
            options.mode,
            options.session_id,
            process.pid,
            invocation.kind.value,
        )
        return UIProcess(process=process, invocation=invocation)
