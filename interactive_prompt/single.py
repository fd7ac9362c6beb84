"""Single-question exchange with a detached UI window."""

from __future__ import annotations

import anyio

from interactive_prompt._config import PromptSettings, get_settings
from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import SpawnFailure, WorkspaceError
from interactive_prompt.heartbeat import HeartbeatMonitor
from interactive_prompt.launcher import Launcher, UIOptions, UIProcess
from interactive_prompt.outcome import Outcome
from interactive_prompt.waiter import wait_for_response
from interactive_prompt.workspace import QuestionWorkspace

logger = get_logger(__name__)


async def request_user_input(
    prompt: str,
    *,
    title: str,
    options: list[str] | None = None,
    timeout: int | None = None,
    show_countdown: bool = True,
    settings: PromptSettings | None = None,
    launcher: Launcher | None = None,
) -> Outcome:
    """Ask the human one question in a new terminal window.

    The call resolves exactly once: with the answer, with TIMEOUT after
    timeout + deadline_margin seconds, with DEAD when the UI's heartbeat
    stops, or with UNREACHABLE when the UI cannot be launched. The response
    and heartbeat files are removed on every path.

    Args:
        prompt: Question text.
        title: Project or window label.
        options: Predefined answers offered for quick selection.
        timeout: Seconds the human gets; defaults to settings.default_timeout.
        show_countdown: Whether the UI renders the countdown.
        settings: Settings override.
        launcher: Launcher override.

    Returns:
        Outcome of the exchange.
    """
    settings = settings or get_settings()
    launcher = launcher or Launcher(settings)
    timeout = timeout or settings.default_timeout

    workspace = QuestionWorkspace(settings.scratch_dir)
    process: UIProcess | None = None
    outcome = Outcome.unreachable("not started")
    try:
        try:
            await workspace.prepare()
        except WorkspaceError as e:
            logger.error("%s", e)
            return Outcome.unreachable(str(e))

        ui_options = UIOptions(
            mode="question",
            session_id=workspace.session_id,
            title=title,
            prompt=prompt,
            options=options or None,
            timeout=timeout,
            show_countdown=show_countdown,
            heartbeat_interval=settings.heartbeat_interval,
            response_file=workspace.response_path,
            heartbeat_file=workspace.heartbeat_path,
        )
        try:
            process = await launcher.launch(ui_options)
        except SpawnFailure as e:
            logger.error("%s", e)
            return Outcome.unreachable(str(e))

        monitor = HeartbeatMonitor(
            workspace.heartbeat_path,
            stale_threshold=settings.stale_threshold,
            startup_grace=settings.startup_grace,
        )
        result = await wait_for_response(
            workspace.response,
            monitor,
            timeout=timeout + settings.deadline_margin,
            check_interval=settings.check_interval,
            poll_interval=settings.poll_interval,
            process=process,
        )
        outcome = Outcome.from_wait(result)
        logger.info("Question %s resolved: %s", workspace.session_id, outcome.kind.value)
        return outcome
    finally:
        with anyio.CancelScope(shield=True):
            if process is not None and process.is_running and not outcome.answered:
                try:
                    await process.terminate(settings.terminate_grace)
                except OSError as e:
                    logger.warning("Failed to terminate UI for %s: %s", workspace.session_id, e)
            await workspace.cleanup()


__all__ = ["request_user_input"]
