"""Agent-facing tools for asking the human questions.

InteractiveTools turns Outcome values into the short messages an agent reads
and never lets an exception escape. toolset() exposes the enabled tools as a
pydantic-ai FunctionToolset:

    async with SessionRegistry(settings) as registry:
        agent = Agent(model, toolsets=[InteractiveTools(registry, settings).toolset()])
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field
from pydantic_ai import FunctionToolset, Tool

from interactive_prompt._config import PromptSettings
from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import InactiveSession, InteractivePromptError, UnknownSession
from interactive_prompt.outcome import Outcome, OutcomeKind
from interactive_prompt.registry import SessionRegistry
from interactive_prompt.single import request_user_input

logger = get_logger(__name__)

CHAT_TOOL_GROUP = "intensive_chat"
CHAT_TOOLS = ("start_intensive_chat", "ask_intensive_chat", "stop_intensive_chat")
ALL_TOOLS = ("request_user_input", *CHAT_TOOLS)

INVALID_SESSION = "Error: Invalid or expired session ID."


def is_tool_disabled(name: str, disabled: list[str]) -> bool:
    """True if the tool is disabled by name or through its group."""
    return name in disabled or (name in CHAT_TOOLS and CHAT_TOOL_GROUP in disabled)


class InteractiveTools:
    """Tool handlers backed by a session registry."""

    def __init__(self, registry: SessionRegistry, settings: PromptSettings | None = None) -> None:
        self.registry = registry
        self.settings = settings or registry.settings

    def enabled_tools(self) -> list[str]:
        return [name for name in ALL_TOOLS if not is_tool_disabled(name, self.settings.disabled_tools)]

    def toolset(self) -> FunctionToolset:
        descriptions = {
            "request_user_input": (
                "Ask the user a question in a separate terminal window and wait for the answer. "
                f"The user has {self.settings.default_timeout} seconds to reply. "
                "Offer predefined options when the likely answers are known."
            ),
            "start_intensive_chat": (
                "Open a persistent chat window for a series of related questions. "
                "Returns a session ID that must be passed to ask_intensive_chat and stop_intensive_chat."
            ),
            "ask_intensive_chat": (
                "Ask one question in an open intensive chat session and wait for the answer. "
                f"The user has {self.settings.default_timeout} seconds per question."
            ),
            "stop_intensive_chat": "Close an intensive chat session when no more questions are needed.",
        }
        tools = [
            Tool(function=getattr(self, name), name=name, description=descriptions[name], takes_ctx=False)
            for name in self.enabled_tools()
        ]
        return FunctionToolset(tools=tools)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def request_user_input(
        self,
        project_name: Annotated[str, Field(description="Project or context the question is about, shown as title.")],
        message: Annotated[str, Field(description="The question to ask the user.")],
        predefined_options: Annotated[
            list[str] | None, Field(description="Answers the user can pick instead of typing.")
        ] = None,
    ) -> str:
        try:
            outcome = await request_user_input(
                f"{project_name}: {message}",
                title=project_name,
                options=predefined_options,
                settings=self.settings,
                launcher=self.registry.launcher,
            )
        except InteractivePromptError as e:
            logger.error("request_user_input failed: %s", e)
            return f"Failed to get user input: {e}"
        return self._reply_message(outcome)

    async def start_intensive_chat(
        self,
        session_title: Annotated[str, Field(description="Title of the chat window.")],
    ) -> str:
        try:
            session_id = await self.registry.open(session_title, timeout=self.settings.default_timeout)
        except InteractivePromptError as e:
            logger.error("start_intensive_chat failed: %s", e)
            return f"Failed to start intensive chat session: {e}"
        return f"Intensive chat session started successfully. Session ID: {session_id}"

    async def ask_intensive_chat(
        self,
        session_id: Annotated[str, Field(description="Session ID returned by start_intensive_chat.")],
        question: Annotated[str, Field(description="The question to ask the user.")],
        predefined_options: Annotated[
            list[str] | None, Field(description="Answers the user can pick instead of typing.")
        ] = None,
    ) -> str:
        try:
            outcome = await self.registry.ask(session_id, question, predefined_options)
        except UnknownSession:
            return INVALID_SESSION
        except InteractivePromptError as e:
            logger.error("ask_intensive_chat failed: %s", e)
            return f"Failed to ask question in session: {e}"
        return self._chat_reply_message(outcome)

    async def stop_intensive_chat(
        self,
        session_id: Annotated[str, Field(description="Session ID returned by start_intensive_chat.")],
    ) -> str:
        try:
            await self.registry.close(session_id)
        except InactiveSession:
            return "Session not found or already stopped."
        except UnknownSession:
            return INVALID_SESSION
        except InteractivePromptError as e:
            logger.error("stop_intensive_chat failed: %s", e)
            return f"Failed to stop intensive chat session: {e}"
        return "Session stopped successfully."

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    @staticmethod
    def _reply_message(outcome: Outcome) -> str:
        if outcome.kind is OutcomeKind.ANSWER:
            return f"User replied: {outcome.answer}"
        if outcome.kind is OutcomeKind.EMPTY:
            return "User replied with empty input."
        if outcome.kind is OutcomeKind.TIMEOUT:
            return "User did not reply: Timeout occurred."
        if outcome.kind is OutcomeKind.DEAD:
            return "User did not reply: The input window was closed."
        return f"Failed to get user input: {outcome.detail or 'the input window could not be opened'}"

    @staticmethod
    def _chat_reply_message(outcome: Outcome) -> str:
        if outcome.kind is OutcomeKind.ANSWER:
            return f"User replied: {outcome.answer}"
        if outcome.kind is OutcomeKind.EMPTY:
            return "User replied with empty input in intensive chat."
        if outcome.kind is OutcomeKind.TIMEOUT:
            return "User did not reply to question in intensive chat: Timeout occurred."
        if outcome.kind is OutcomeKind.DEAD:
            return "User did not reply: The intensive chat window was closed. Start a new session to continue."
        if outcome.kind is OutcomeKind.UNKNOWN_SESSION:
            return INVALID_SESSION
        return f"Failed to ask question in session: {outcome.detail or 'unknown error'}"
