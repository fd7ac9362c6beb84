"""CLI entry point for interactive-prompt.

Ask a human a question from a shell script:

    interactive-prompt ask "Deploy now?" -o yes -o no
    printf 'Language? | Python, Go\\nProject name?\\n' | interactive-prompt chat "Setup"
"""

from __future__ import annotations

import asyncio
import sys
from typing import TextIO

import click

from interactive_prompt import __version__
from interactive_prompt._config import get_settings
from interactive_prompt._logger import configure_logging, get_logger
from interactive_prompt.exceptions import InteractivePromptError, UnknownSession
from interactive_prompt.outcome import Outcome, OutcomeKind
from interactive_prompt.registry import SessionRegistry
from interactive_prompt.single import request_user_input

logger = get_logger(__name__)

OPTION_SEPARATOR = " | "

EXIT_CODES = {
    OutcomeKind.ANSWER: 0,
    OutcomeKind.EMPTY: 0,
    OutcomeKind.TIMEOUT: 3,
    OutcomeKind.DEAD: 4,
    OutcomeKind.UNKNOWN_SESSION: 5,
    OutcomeKind.UNREACHABLE: 5,
}


def parse_question_line(line: str) -> tuple[str, list[str] | None]:
    """Split "question | option, option" into the question and its options."""
    question, sep, raw_options = line.partition(OPTION_SEPARATOR)
    if not sep:
        return line.strip(), None
    options = [o.strip() for o in raw_options.split(",") if o.strip()]
    return question.strip(), options or None


def describe(outcome: Outcome) -> str:
    if outcome.kind is OutcomeKind.ANSWER:
        return outcome.answer or ""
    if outcome.kind is OutcomeKind.EMPTY:
        return ""
    return f"<{outcome.kind.value}{': ' + outcome.detail if outcome.detail else ''}>"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__, prog_name="interactive-prompt")
def cli(verbose: bool) -> None:
    """Ask a human questions in a separate terminal window."""
    configure_logging(verbose=verbose)


@cli.command()
@click.argument("message")
@click.option("-o", "--option", "options", multiple=True, help="Predefined answer (repeatable)")
@click.option("-t", "--timeout", type=click.IntRange(min=1), default=None, help="Seconds to wait for an answer")
@click.option("--title", default="interactive-prompt", show_default=True, help="Window title")
def ask(message: str, options: tuple[str, ...], timeout: int | None, title: str) -> None:
    """Ask a single question and print the answer."""
    outcome = asyncio.run(request_user_input(message, title=title, options=list(options) or None, timeout=timeout))
    if outcome.answered:
        click.echo(outcome.answer)
    else:
        click.echo(describe(outcome), err=True)
    sys.exit(EXIT_CODES[outcome.kind])


@cli.command()
@click.argument("title")
@click.option("-t", "--timeout", type=click.IntRange(min=1), default=None, help="Seconds per question")
def chat(title: str, timeout: int | None) -> None:
    """Ask each stdin line as a question in one chat window.

    Options follow the question after " | ", separated by commas.
    """
    try:
        code = asyncio.run(_run_chat(title, timeout, click.get_text_stream("stdin")))
    except InteractivePromptError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(EXIT_CODES[OutcomeKind.UNREACHABLE])
    sys.exit(code)


async def _run_chat(title: str, timeout: int | None, stream: TextIO) -> int:
    async with SessionRegistry(get_settings()) as registry:
        session_id = await registry.open(title, timeout=timeout)
        code = 0
        try:
            for line in stream:
                if not line.strip():
                    continue
                question, options = parse_question_line(line)
                outcome = await registry.ask(session_id, question, options)
                click.echo(f"{question}\t{describe(outcome)}")
                if outcome.kind is OutcomeKind.DEAD:
                    return EXIT_CODES[outcome.kind]
                if not outcome.answered:
                    code = EXIT_CODES[outcome.kind]
        finally:
            try:
                await registry.close(session_id)
            except UnknownSession:
                logger.debug("Session %s was already closed", session_id)
        return code


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
