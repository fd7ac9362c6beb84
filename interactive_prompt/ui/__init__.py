"""Terminal UI renderer launched in its own window.

Run as ``python -m interactive_prompt.ui <payload>``.
"""

from interactive_prompt.ui.app import run_chat, run_question, run_ui
from interactive_prompt.ui.view import PromptView, resolve_choice

__all__ = ["PromptView", "resolve_choice", "run_chat", "run_question", "run_ui"]
