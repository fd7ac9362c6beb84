"""UI process main loops for question and chat mode.

Both loops write a heartbeat for as long as they run and remove it on every
exit path, so the parent notices a closed window within one staleness
threshold. Ctrl+C or Ctrl+D ends the UI without writing an answer.
"""

from __future__ import annotations

from pathlib import Path

import anyio

from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import MalformedQueueFile
from interactive_prompt.heartbeat import HeartbeatWriter
from interactive_prompt.launcher import UIOptions
from interactive_prompt.mailbox import FileMailbox
from interactive_prompt.ui.view import PromptView
from interactive_prompt.workspace import AnswerMailbox, ChatWorkspace, Question

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_USAGE = 2


async def next_question(queue: FileMailbox, poll_interval: float) -> Question:
    """Wait for the next valid question in the queue.

    The queue file is left in place; the caller deletes it once the question
    is on screen. Malformed queue files are logged and deleted so the slot
    frees up.
    """
    while True:
        raw = await queue.wait(poll_interval)
        try:
            return Question.parse(raw, queue.path)
        except MalformedQueueFile as e:
            logger.warning("Dropped malformed question: %s", e)
            await queue.discard()


async def run_question(options: UIOptions, view: PromptView | None = None) -> int:
    """Show one question and write the answer to the response file."""
    if options.response_file is None or options.heartbeat_file is None or options.prompt is None:
        raise MalformedQueueFile(Path("<argv>"), "question mode needs prompt, response_file and heartbeat_file")

    view = view or PromptView(options.title, show_countdown=options.show_countdown)
    writer = HeartbeatWriter(options.heartbeat_file, options.heartbeat_interval)
    response = AnswerMailbox(options.response_file)
    exit_code = EXIT_OK
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(writer.run)
            view.render_header()
            view.render_question(options.prompt, options.options)
            try:
                answer = await view.ask(options.options, options.timeout)
            except (KeyboardInterrupt, EOFError):
                logger.info("Question %s dismissed without an answer", options.session_id)
                exit_code = EXIT_ABORTED
            else:
                await response.write_answer(answer)
                if answer is None:
                    view.render_notice("Time is up.")
            tg.cancel_scope.cancel()
    finally:
        writer.remove()
    return exit_code


async def run_chat(options: UIOptions, view: PromptView | None = None, poll_interval: float = 0.1) -> int:
    """Answer questions from the session queue until the close sentinel appears."""
    if options.session_dir is None:
        raise MalformedQueueFile(Path("<argv>"), "chat mode needs session_dir")

    workspace = ChatWorkspace(options.session_dir, options.session_id)
    view = view or PromptView(options.title, show_countdown=options.show_countdown)
    writer = HeartbeatWriter(workspace.heartbeat_path, options.heartbeat_interval)
    exit_code = EXIT_OK
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(writer.run)

            async def watch_close() -> None:
                close_path = anyio.Path(workspace.close_path)
                root = anyio.Path(workspace.root)
                while not await close_path.exists():
                    if not await root.exists():
                        logger.info("Session directory %s vanished", workspace.root)
                        break
                    await anyio.sleep(poll_interval)
                logger.info("Chat session %s closing", options.session_id)
                tg.cancel_scope.cancel()

            tg.start_soon(watch_close)
            view.render_header()
            while True:
                question = await next_question(workspace.queue, poll_interval)
                view.render_question(question.text, question.options)
                await workspace.queue.discard()
                try:
                    answer = await view.ask(question.options, options.timeout)
                except (KeyboardInterrupt, EOFError):
                    logger.info("Chat session %s dismissed by the user", options.session_id)
                    exit_code = EXIT_ABORTED
                    tg.cancel_scope.cancel()
                    break
                await workspace.response(question.id).write_answer(answer)
                if answer is None:
                    view.render_notice("Time is up, waiting for the next question.")
                else:
                    view.render_answer(answer)
    finally:
        writer.remove()
    return exit_code


async def run_ui(options: UIOptions) -> int:
    logger.info("UI started in %s mode for session %s", options.mode, options.session_id)
    if options.mode == "chat":
        return await run_chat(options)
    return await run_question(options)
