"""Liveness-aware waiting for a UI response.

wait_for_response() races up to five triggers inside one anyio task group:

1. the response mailbox receives non-empty content,
2. the heartbeat monitor reports the UI dead (stale, vanished, never started),
3. the hard deadline elapses,
4. the launched process exits with a non-zero code,
5. an optional "session closed" event is set.

The first trigger to fire records the result and cancels the task group, so
the remaining watchers are torn down and no second resolution can happen.
A zero exit code is not a resolution: a UI may exit right after writing its
answer, and that write resolves the wait on its own.

The waiter never deletes files. Callers run their cleanup in a finally block.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import anyio

from interactive_prompt._logger import get_logger
from interactive_prompt.heartbeat import HeartbeatMonitor
from interactive_prompt.mailbox import Mailbox

logger = get_logger(__name__)


class Resolution(str, Enum):
    """Which trigger ended a wait."""

    ANSWERED = "answered"
    TIMED_OUT = "timed_out"
    PROCESS_DIED = "process_died"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class WaitResult:
    """Single resolution of a wait."""

    resolution: Resolution
    content: str | None = None
    detail: str | None = None


class ProcessHandle(Protocol):
    """The part of a launched process the waiter observes."""

    @property
    def returncode(self) -> int | None: ...

    async def wait(self) -> int: ...


async def wait_for_response(
    mailbox: Mailbox,
    monitor: HeartbeatMonitor,
    *,
    timeout: float,
    check_interval: float,
    poll_interval: float,
    process: ProcessHandle | None = None,
    closed: anyio.Event | None = None,
) -> WaitResult:
    """Wait for exactly one of answer, deadline, or UI death.

    Args:
        mailbox: Slot the UI writes its answer into.
        monitor: Heartbeat monitor for the UI process.
        timeout: Seconds until the hard deadline (already including any margin).
        check_interval: Seconds between heartbeat checks.
        poll_interval: Seconds between mailbox polls.
        process: Launched process; a non-zero exit resolves as PROCESS_DIED.
        closed: Event set when the owning session is closed.

    Returns:
        The first resolution that occurred.
    """
    result: WaitResult | None = None

    async with anyio.create_task_group() as tg:

        def resolve(outcome: WaitResult) -> None:
            nonlocal result
            if result is None:
                result = outcome
                tg.cancel_scope.cancel()

        async def resolve_unless_answered(resolution: Resolution, detail: str) -> None:
            # An answer written just before the UI went away still counts.
            try:
                content = await mailbox.peek()
            except OSError:
                content = None
            if content is not None:
                resolve(WaitResult(Resolution.ANSWERED, content=content))
            else:
                resolve(WaitResult(resolution, detail=detail))

        async def watch_response() -> None:
            try:
                content = await mailbox.wait(poll_interval)
            except OSError as e:
                logger.error("Failed to read response from %r: %s", mailbox, e)
                resolve(WaitResult(Resolution.ERROR, detail=f"response unreadable: {e}"))
                return
            resolve(WaitResult(Resolution.ANSWERED, content=content))

        async def watch_heartbeat() -> None:
            liveness = await monitor.wait_until_dead(check_interval)
            logger.info("UI heartbeat %s at %s", liveness.value, monitor.path)
            await resolve_unless_answered(Resolution.PROCESS_DIED, f"heartbeat {liveness.value}")

        async def watch_deadline() -> None:
            await anyio.sleep(timeout)
            await resolve_unless_answered(Resolution.TIMED_OUT, f"no response after {timeout:g}s")

        async def watch_process(handle: ProcessHandle) -> None:
            code = await handle.wait()
            if code != 0:
                logger.info("UI process exited with code %s", code)
                await resolve_unless_answered(Resolution.PROCESS_DIED, f"exit code {code}")

        async def watch_closed(event: anyio.Event) -> None:
            await event.wait()
            resolve(WaitResult(Resolution.CLOSED, detail="session closed"))

        tg.start_soon(watch_response)
        tg.start_soon(watch_heartbeat)
        tg.start_soon(watch_deadline)
        if process is not None:
            tg.start_soon(watch_process, process)
        if closed is not None:
            tg.start_soon(watch_closed, closed)

    assert result is not None
    return result
