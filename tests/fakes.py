"""In-loop fakes for the UI process."""

from __future__ import annotations

import asyncio
import io
from collections.abc import Awaitable, Callable

import anyio
from rich.console import Console

from interactive_prompt._config import PromptSettings
from interactive_prompt.launcher import Invocation, Launcher, TerminalKind, UIOptions
from interactive_prompt.ui.app import run_chat, run_question
from interactive_prompt.ui.view import PromptView, resolve_choice

UIBehavior = Callable[[UIOptions], Awaitable[int]]


class ScriptedView(PromptView):
    """PromptView that answers from a script instead of the keyboard.

    Items are answers (str), None for an expired countdown, or an exception
    to raise. When the script runs out the human never answers.
    """

    def __init__(self, answers: list[str | None | BaseException] | None = None, delay: float = 0.02) -> None:
        super().__init__("test", console=Console(file=io.StringIO(), width=80))
        self.answers = list(answers or [])
        self.delay = delay
        self.asked: list[list[str] | None] = []

    async def ask(self, options: list[str] | None, timeout: float) -> str | None:
        self.asked.append(options)
        await anyio.sleep(self.delay)
        if not self.answers:
            await anyio.sleep_forever()
        item = self.answers.pop(0)
        if isinstance(item, BaseException):
            raise item
        if item is None:
            return None
        return resolve_choice(item, options)

    @property
    def output(self) -> str:
        file = self.console.file
        assert isinstance(file, io.StringIO)
        return file.getvalue()


def scripted_ui(view: ScriptedView) -> UIBehavior:
    """Run the real UI loops against a scripted view."""

    async def behavior(options: UIOptions) -> int:
        if options.mode == "chat":
            return await run_chat(options, view=view, poll_interval=0.01)
        return await run_question(options, view=view)

    return behavior


def frozen_ui(beats: int = 1) -> UIBehavior:
    """A UI that writes a few heartbeats and then hangs."""

    async def behavior(options: UIOptions) -> int:
        assert options.heartbeat_file is not None
        for _ in range(beats):
            await anyio.Path(options.heartbeat_file).write_text("beat")
            await anyio.sleep(options.heartbeat_interval)
        await anyio.sleep_forever()
        return 0

    return behavior


def crashing_ui(code: int = 1, after: float = 0.0) -> UIBehavior:
    """A UI that exits with an error without ever beating."""

    async def behavior(options: UIOptions) -> int:
        await anyio.sleep(after)
        return code

    return behavior


class FakeUIProcess:
    """In-loop stand-in for a launched UI process."""

    pid = 0

    def __init__(self, invocation: Invocation) -> None:
        self.invocation = invocation
        self.returncode: int | None = None
        self.terminated = False
        self._exited = asyncio.Event()
        self.task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self.returncode is None

    def exit(self, code: int) -> None:
        if self.returncode is None:
            self.returncode = code
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    async def terminate(self, grace: float = 2.0) -> int | None:
        self.terminated = True
        if self.task is not None and not self.task.done():
            self.task.cancel()
            await asyncio.wait([self.task], timeout=grace)
        self.exit(-15)
        return self.returncode


class FakeLauncher(Launcher):
    """Launcher that runs a UI behavior as a task in the current loop."""

    def __init__(self, settings: PromptSettings, behavior: UIBehavior) -> None:
        super().__init__(settings)
        self.behavior = behavior
        self.launched: list[UIOptions] = []
        self.processes: list[FakeUIProcess] = []

    async def launch(self, options: UIOptions) -> FakeUIProcess:  # type: ignore[override]
        self.launched.append(options)
        process = FakeUIProcess(Invocation(argv=["fake-ui"], kind=TerminalKind.DIRECT))
        process.task = asyncio.create_task(self._run(options, process))
        self.processes.append(process)
        return process

    async def _run(self, options: UIOptions, process: FakeUIProcess) -> None:
        try:
            code = await self.behavior(options)
        except asyncio.CancelledError:
            process.exit(-15)
            raise
        process.exit(code)

    def shutdown(self) -> None:
        for process in self.processes:
            if process.task is not None and not process.task.done():
                process.task.cancel()


