"""Entry point of the UI process."""

from __future__ import annotations

import sys

import anyio

from interactive_prompt._logger import configure_file_logging, get_logger
from interactive_prompt.exceptions import MalformedQueueFile
from interactive_prompt.launcher import decode_payload
from interactive_prompt.ui.app import EXIT_ABORTED, EXIT_USAGE, run_ui

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        sys.stderr.write("usage: python -m interactive_prompt.ui <payload>\n")
        return EXIT_USAGE

    try:
        options = decode_payload(args[0])
    except MalformedQueueFile as e:
        sys.stderr.write(f"{e}\n")
        return EXIT_USAGE

    if options.log_file is not None:
        configure_file_logging(options.log_file)

    try:
        return anyio.run(run_ui, options)
    except MalformedQueueFile as e:
        logger.error("%s", e)
        return EXIT_USAGE
    except KeyboardInterrupt:
        return EXIT_ABORTED


if __name__ == "__main__":
    sys.exit(main())
