"""Tests for interactive_prompt.cli module."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from fakes import ScriptedView, scripted_ui
from interactive_prompt import cli as cli_module
from interactive_prompt._config import PromptSettings
from interactive_prompt.cli import cli, describe, parse_question_line
from interactive_prompt.outcome import Outcome, OutcomeKind
from interactive_prompt.registry import SessionRegistry


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Project name?\n", ("Project name?", None)),
        ("Language? | Python, Go\n", ("Language?", ["Python", "Go"])),
        ("Pick one |  a ,, b ", ("Pick one", ["a", "b"])),
        ("Empty options? | , ", ("Empty options?", None)),
        ("a|b", ("a|b", None)),
    ],
)
def test_parse_question_line(line: str, expected: tuple[str, list[str] | None]) -> None:
    assert parse_question_line(line) == expected


def test_describe() -> None:
    assert describe(Outcome(OutcomeKind.ANSWER, answer="ok")) == "ok"
    assert describe(Outcome(OutcomeKind.EMPTY, answer="")) == ""
    assert describe(Outcome(OutcomeKind.TIMEOUT)) == "<timeout>"
    assert describe(Outcome(OutcomeKind.DEAD, detail="exit code 2")) == "<dead: exit code 2>"


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "interactive-prompt" in result.output


@pytest.mark.parametrize(
    ("outcome", "exit_code", "stdout"),
    [
        (Outcome(OutcomeKind.ANSWER, answer="yes"), 0, "yes\n"),
        (Outcome(OutcomeKind.EMPTY, answer=""), 0, "\n"),
        (Outcome(OutcomeKind.TIMEOUT), 3, ""),
        (Outcome(OutcomeKind.DEAD), 4, ""),
        (Outcome(OutcomeKind.UNREACHABLE, detail="boom"), 5, ""),
    ],
)
def test_ask_exit_codes(monkeypatch, outcome: Outcome, exit_code: int, stdout: str) -> None:
    calls = []

    async def fake_request(message, **kwargs):
        calls.append((message, kwargs))
        return outcome

    monkeypatch.setattr(cli_module, "request_user_input", fake_request)
    result = CliRunner().invoke(cli, ["ask", "Deploy?", "-o", "yes", "-o", "no", "-t", "9"])

    assert result.exit_code == exit_code
    assert result.stdout == stdout
    ((message, kwargs),) = calls
    assert message == "Deploy?"
    assert kwargs["options"] == ["yes", "no"]
    assert kwargs["timeout"] == 9


def test_ask_rejects_zero_timeout() -> None:
    result = CliRunner().invoke(cli, ["ask", "Deploy?", "-t", "0"])
    assert result.exit_code == 2


def test_chat_reads_questions_from_stdin(monkeypatch, settings: PromptSettings, make_launcher) -> None:
    view = ScriptedView(["2", "demo"])
    launcher = make_launcher(scripted_ui(view))
    monkeypatch.setattr(cli_module, "get_settings", lambda: settings)
    monkeypatch.setattr(cli_module, "SessionRegistry", lambda s: SessionRegistry(s, launcher))

    result = CliRunner().invoke(cli, ["chat", "Setup"], input="Language? | Python, Go\n\nProject name?\n")

    assert result.exit_code == 0
    assert result.stdout == "Language?\tGo\nProject name?\tdemo\n"
    assert view.asked == [["Python", "Go"], None]
    assert launcher.processes[0].returncode is not None
