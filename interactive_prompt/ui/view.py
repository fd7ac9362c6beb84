"""Terminal rendering and input for the UI process."""

from __future__ import annotations

import time
from typing import Any

import anyio
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text


def resolve_choice(raw: str, options: list[str] | None) -> str:
    """Map typed input to an answer.

    A number between 1 and len(options) selects that option; anything else is
    returned as typed.
    """
    if options:
        stripped = raw.strip()
        if stripped.isdigit() and 1 <= int(stripped) <= len(options):
            return options[int(stripped) - 1]
    return raw


def format_remaining(seconds: float) -> str:
    seconds = max(int(seconds + 0.999), 0)
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}:{seconds:02d}"


class PromptView:
    """Renders questions with rich and reads answers with prompt_toolkit."""

    def __init__(self, title: str, *, show_countdown: bool = True, console: Console | None = None) -> None:
        self.title = title
        self.show_countdown = show_countdown
        self.console = console or Console()
        self._session: PromptSession[str] | None = None
        self._deadline: float | None = None

    def render_header(self) -> None:
        self.console.print(
            Panel(
                Text(self.title, style="bold cyan", justify="center"),
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def question_panel(self, text: str, options: list[str] | None) -> Panel:
        parts: list[Any] = [Text(text, style="bold")]
        if options:
            parts.append(Text(""))
            for index, option in enumerate(options, start=1):
                line = Text()
                line.append(f"  {index}. ", style="yellow")
                line.append(option)
                parts.append(line)
        subtitle = "[dim]Enter a number to pick an option, or type an answer[/dim]" if options else None
        return Panel(Group(*parts), title="[cyan]Question[/cyan]", subtitle=subtitle, border_style="blue")

    def render_question(self, text: str, options: list[str] | None) -> None:
        self.console.print(self.question_panel(text, options))

    def render_answer(self, answer: str) -> None:
        line = Text("  > ", style="dim")
        line.append(answer if answer else "(empty)", style="green" if answer else "dim")
        self.console.print(line)

    def render_notice(self, message: str, style: str = "yellow") -> None:
        self.console.print(Text(message, style=style))

    def _toolbar(self) -> HTML:
        if self._deadline is None:
            return HTML("")
        remaining = format_remaining(self._deadline - time.monotonic())
        return HTML(f" Time remaining: <b>{remaining}</b>")

    async def ask(self, options: list[str] | None, timeout: float) -> str | None:
        """Read one answer.

        Returns:
            The answer with numbered options resolved, or None when the
            countdown ran out.
        """
        self._deadline = time.monotonic() + timeout
        completer = WordCompleter(options, sentence=True) if options else None
        if self._session is None:
            self._session = PromptSession()
        raw: str | None = None
        try:
            with anyio.move_on_after(timeout):
                raw = await self._session.prompt_async(
                    "> ",
                    completer=completer,
                    bottom_toolbar=self._toolbar if self.show_countdown else None,
                    refresh_interval=0.5 if self.show_countdown else 0,
                )
        finally:
            self._deadline = None
        if raw is None:
            return None
        return resolve_choice(raw, options)
