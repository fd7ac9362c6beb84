"""Tests for interactive_prompt.tools module."""

from __future__ import annotations

import pytest
from inline_snapshot import snapshot

from fakes import ScriptedView, frozen_ui, scripted_ui
from interactive_prompt._config import PromptSettings
from interactive_prompt.launcher import Launcher
from interactive_prompt.outcome import Outcome, OutcomeKind
from interactive_prompt.registry import SessionRegistry
from interactive_prompt.tools import INVALID_SESSION, InteractiveTools, is_tool_disabled

# -----------------------------------------------------------------------------
# Tool selection
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("disabled", "expected"),
    [
        ([], ["request_user_input", "start_intensive_chat", "ask_intensive_chat", "stop_intensive_chat"]),
        (["intensive_chat"], ["request_user_input"]),
        (["request_user_input"], ["start_intensive_chat", "ask_intensive_chat", "stop_intensive_chat"]),
        (["ask_intensive_chat"], ["request_user_input", "start_intensive_chat", "stop_intensive_chat"]),
    ],
)
def test_enabled_tools(settings: PromptSettings, disabled: list[str], expected: list[str]) -> None:
    registry = SessionRegistry(settings.model_copy(update={"disabled_tools": disabled}))
    assert InteractiveTools(registry).enabled_tools() == expected


def test_group_does_not_disable_single_question() -> None:
    assert is_tool_disabled("stop_intensive_chat", ["intensive_chat"])
    assert not is_tool_disabled("request_user_input", ["intensive_chat"])


def test_toolset_exposes_enabled_tools(settings: PromptSettings) -> None:
    registry = SessionRegistry(settings.model_copy(update={"disabled_tools": ["intensive_chat"]}))
    toolset = InteractiveTools(registry).toolset()

    assert list(toolset.tools) == ["request_user_input"]
    tool = toolset.tools["request_user_input"]
    assert "2 seconds" in (tool.description or "")
    assert set(tool.function_schema.json_schema["properties"]) == {"project_name", "message", "predefined_options"}


# -----------------------------------------------------------------------------
# Messages
# -----------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("outcome", "single", "chat"),
    [
        (
            Outcome(kind=OutcomeKind.ANSWER, answer="Yes"),
            snapshot("User replied: Yes"),
            snapshot("User replied: Yes"),
        ),
        (
            Outcome(kind=OutcomeKind.EMPTY, answer=""),
            snapshot("User replied with empty input."),
            snapshot("User replied with empty input in intensive chat."),
        ),
        (
            Outcome(kind=OutcomeKind.TIMEOUT),
            snapshot("User did not reply: Timeout occurred."),
            snapshot("User did not reply to question in intensive chat: Timeout occurred."),
        ),
        (
            Outcome(kind=OutcomeKind.DEAD),
            snapshot("User did not reply: The input window was closed."),
            snapshot("User did not reply: The intensive chat window was closed. Start a new session to continue."),
        ),
        (
            Outcome(kind=OutcomeKind.UNREACHABLE, detail="no terminal"),
            snapshot("Failed to get user input: no terminal"),
            snapshot("Failed to ask question in session: no terminal"),
        ),
    ],
)
def test_reply_messages(outcome: Outcome, single: str, chat: str) -> None:
    assert InteractiveTools._reply_message(outcome) == single
    assert InteractiveTools._chat_reply_message(outcome) == chat


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------


async def test_request_user_input_prefixes_project(settings: PromptSettings, make_launcher) -> None:
    view = ScriptedView(["2"])
    launcher = make_launcher(scripted_ui(view))

    async with SessionRegistry(settings, launcher) as registry:
        tools = InteractiveTools(registry)
        reply = await tools.request_user_input("shop", "Which database?", ["sqlite", "postgres"])

    assert reply == snapshot("User replied: postgres")
    assert launcher.launched[0].prompt == "shop: Which database?"
    assert launcher.launched[0].title == "shop"


async def test_request_user_input_spawn_failure(settings: PromptSettings) -> None:
    launcher = Launcher(settings.model_copy(update={"ui_command": ["/nonexistent/ui-renderer"]}))

    async with SessionRegistry(settings, launcher) as registry:
        reply = await InteractiveTools(registry).request_user_input("shop", "Hello?")

    assert reply.startswith("Failed to get user input: ")


async def test_chat_tools_flow(settings: PromptSettings, make_launcher) -> None:
    launcher = make_launcher(scripted_ui(ScriptedView(["Yes", ""])))

    async with SessionRegistry(settings.model_copy(update={"cleanup_delay": 5}), launcher) as registry:
        tools = InteractiveTools(registry)

        started = await tools.start_intensive_chat("Setup")
        assert started.startswith("Intensive chat session started successfully. Session ID: ")
        session_id = started.rsplit(" ", 1)[1]
        assert session_id in registry

        assert await tools.ask_intensive_chat(session_id, "Use TypeScript?", ["Yes", "No"]) == snapshot(
            "User replied: Yes"
        )
        assert await tools.ask_intensive_chat(session_id, "Anything else?") == snapshot(
            "User replied with empty input in intensive chat."
        )
        assert await tools.stop_intensive_chat(session_id) == snapshot("Session stopped successfully.")
        assert await tools.stop_intensive_chat(session_id) == snapshot("Session not found or already stopped.")
        assert await tools.ask_intensive_chat(session_id, "Still there?") == INVALID_SESSION


async def test_unknown_session_ids(settings: PromptSettings, make_launcher) -> None:
    async with SessionRegistry(settings, make_launcher(scripted_ui(ScriptedView()))) as registry:
        tools = InteractiveTools(registry)
        assert await tools.ask_intensive_chat("nope", "Hello?") == INVALID_SESSION
        assert await tools.stop_intensive_chat("nope") == INVALID_SESSION


async def test_dead_chat_window(settings: PromptSettings, make_launcher) -> None:
    launcher = make_launcher(frozen_ui(beats=1))

    async with SessionRegistry(settings.model_copy(update={"sweep_interval": 60}), launcher) as registry:
        tools = InteractiveTools(registry)
        session_id = (await tools.start_intensive_chat("Setup")).rsplit(" ", 1)[1]

        reply = await tools.ask_intensive_chat(session_id, "Anyone?")

        assert reply == snapshot(
            "User did not reply: The intensive chat window was closed. Start a new session to continue."
        )
        assert await tools.ask_intensive_chat(session_id, "Anyone?") == INVALID_SESSION


async def test_start_chat_spawn_failure(settings: PromptSettings) -> None:
    launcher = Launcher(settings.model_copy(update={"ui_command": ["/nonexistent/ui-renderer"]}))

    async with SessionRegistry(settings, launcher) as registry:
        reply = await InteractiveTools(registry).start_intensive_chat("Setup")

    assert reply.startswith("Failed to start intensive chat session: ")
    assert len(registry) == 0
