"""Registry of intensive chat sessions.

A SessionRegistry owns every chat session of one server. It is used as an
async context manager; while entered it runs a background sweep that tears
down sessions whose UI has died even when nobody is asking a question, and it
hosts the deferred removal of closed workspaces.

Example:
    async with SessionRegistry(settings) as registry:
        session_id = await registry.open("Project setup")
        outcome = await registry.ask(session_id, "Use TypeScript?", ["Yes", "No"])
        await registry.close(session_id)

Session states move STARTING -> ACTIVE -> CLOSING -> CLOSED and never go
back. Any operation on a session that is not ACTIVE raises UnknownSession
(InactiveSession while its workspace is still being removed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import TracebackType

import anyio
from anyio.abc import TaskGroup

from interactive_prompt._config import PromptSettings, get_settings
from interactive_prompt._logger import get_logger
from interactive_prompt.exceptions import InactiveSession, SlotOccupied, SpawnFailure, UnknownSession
from interactive_prompt.heartbeat import HeartbeatMonitor
from interactive_prompt.launcher import Launcher, UIOptions, UIProcess
from interactive_prompt.outcome import Outcome
from interactive_prompt.waiter import Resolution, wait_for_response
from interactive_prompt.workspace import ChatWorkspace, Question

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle state of a chat session."""

    STARTING = "starting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class SessionInfo:
    """Public information about a chat session."""

    session_id: str
    title: str
    state: SessionState
    created_at: datetime
    last_heartbeat_at: datetime | None
    workspace: str
    pid: int | None


@dataclass
class ChatSession:
    """Internal record of one intensive chat session."""

    session_id: str
    title: str
    timeout: int
    workspace: ChatWorkspace
    monitor: HeartbeatMonitor
    process: UIProcess | None = None
    state: SessionState = SessionState.STARTING
    created_at: datetime = field(default_factory=datetime.now)
    closed: anyio.Event = field(default_factory=anyio.Event)
    _ask_lock: anyio.Lock = field(default_factory=anyio.Lock)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def last_heartbeat_at(self) -> datetime | None:
        return self.monitor.last_beat

    @property
    def exited_abnormally(self) -> bool:
        return self.process is not None and self.process.returncode not in (None, 0)

    def to_info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            title=self.title,
            state=self.state,
            created_at=self.created_at,
            last_heartbeat_at=self.last_heartbeat_at,
            workspace=str(self.workspace.root),
            pid=self.process.pid if self.process else None,
        )


class SessionRegistry:
    """Owns chat sessions, their UI processes and the liveness sweep."""

    def __init__(self, settings: PromptSettings | None = None, launcher: Launcher | None = None) -> None:
        self._settings = settings or get_settings()
        self._launcher = launcher or Launcher(self._settings)
        self._sessions: dict[str, ChatSession] = {}
        self._lock = anyio.Lock()
        self._task_group: TaskGroup | None = None

    @property
    def settings(self) -> PromptSettings:
        return self._settings

    @property
    def launcher(self) -> Launcher:
        return self._launcher

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> SessionRegistry:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        task_group.start_soon(self._sweep_loop)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        task_group = self._task_group
        assert task_group is not None
        try:
            with anyio.CancelScope(shield=True):
                await self.close_all()
        finally:
            task_group.cancel_scope.cancel()
            self._task_group = None
            await task_group.__aexit__(exc_type, exc_val, exc_tb)
        return None

    def _require_running(self) -> TaskGroup:
        if self._task_group is None:
            raise RuntimeError("SessionRegistry must be entered with 'async with' before use")
        return self._task_group

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    def list_sessions(self) -> list[SessionInfo]:
        return [s.to_info() for s in self._sessions.values()]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def _require_active(self, session_id: str) -> ChatSession:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise UnknownSession(session_id)
            if not session.is_active:
                raise InactiveSession(session_id)
            return session

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def open(self, title: str, timeout: int | None = None) -> str:
        """Start a chat session and its UI window.

        Args:
            title: Title shown at the top of the chat window.
            timeout: Seconds the human gets per question.

        Returns:
            Opaque session ID.

        Raises:
            WorkspaceError: If the session directory cannot be created.
            SpawnFailure: If the UI cannot be launched.
        """
        self._require_running()
        settings = self._settings
        workspace = await ChatWorkspace.create(settings.scratch_dir)
        session = ChatSession(
            session_id=workspace.session_id,
            title=title,
            timeout=timeout or settings.default_timeout,
            workspace=workspace,
            monitor=HeartbeatMonitor(
                workspace.heartbeat_path,
                stale_threshold=settings.stale_threshold,
                startup_grace=settings.startup_grace,
            ),
        )
        async with self._lock:
            self._sessions[session.session_id] = session

        ui_options = UIOptions(
            mode="chat",
            session_id=session.session_id,
            title=title,
            timeout=session.timeout,
            heartbeat_interval=settings.heartbeat_interval,
            heartbeat_file=workspace.heartbeat_path,
            session_dir=workspace.root,
        )
        try:
            process = await self._launcher.launch(ui_options)
        except SpawnFailure:
            async with self._lock:
                session.state = SessionState.CLOSED
                self._sessions.pop(session.session_id, None)
            await workspace.remove()
            raise

        async with self._lock:
            session.process = process
            session.state = SessionState.ACTIVE

        await anyio.sleep(settings.startup_delay)
        logger.info("Opened chat session %s (%s)", session.session_id, title)
        return session.session_id

    async def ask(self, session_id: str, text: str, options: list[str] | None = None) -> Outcome:
        """Ask one question in an open session.

        Returns:
            The answer outcome, TIMEOUT when the human did not answer in time,
            or DEAD when the UI went away (the session is then torn down).

        Raises:
            UnknownSession: If the session does not exist or is not active.
        """
        session = await self._require_active(session_id)
        async with session._ask_lock:
            if not session.is_active:
                raise InactiveSession(session_id)
            return await self._ask(session, Question(text=text, options=options or None))

    async def _ask(self, session: ChatSession, question: Question) -> Outcome:
        settings = self._settings

        liveness = await session.monitor.check()
        if liveness.is_dead or session.exited_abnormally:
            detail = f"heartbeat {liveness.value}" if liveness.is_dead else "UI process exited"
            await self._teardown(session, graceful=False, reason=detail)
            return Outcome.dead(detail)

        await session.workspace.discard_stale_responses()
        deadline = anyio.current_time() + session.timeout + settings.deadline_margin

        enqueued: bool | None = None
        with anyio.move_on_after(deadline - anyio.current_time()):
            enqueued = await self._enqueue(session, question)
        if enqueued is None:
            return Outcome.timeout("previous question was never picked up")
        if not enqueued:
            await self._teardown(session, graceful=False, reason="UI died before showing question")
            return Outcome.dead("UI died before showing question")

        response = session.workspace.response(question.id)
        result = await wait_for_response(
            response,
            session.monitor,
            timeout=max(deadline - anyio.current_time(), 0),
            check_interval=settings.check_interval,
            poll_interval=settings.poll_interval,
            process=session.process,
            closed=session.closed,
        )
        if result.resolution is Resolution.ANSWERED:
            await response.discard()
        elif result.resolution in (Resolution.PROCESS_DIED, Resolution.ERROR):
            await self._teardown(session, graceful=False, reason=result.detail or result.resolution.value)

        outcome = Outcome.from_wait(result)
        logger.info("Question %s in session %s resolved: %s", question.id, session.session_id, outcome.kind.value)
        return outcome

    async def _enqueue(self, session: ChatSession, question: Question) -> bool:
        """Write the question once the queue slot is free.

        Returns:
            True when written, False when the UI died while the slot was
            still occupied. Runs until the caller cancels it.
        """
        settings = self._settings
        last_check = anyio.current_time()
        while True:
            try:
                await session.workspace.queue.put(question.to_json())
                return True
            except SlotOccupied:
                pass
            if anyio.current_time() - last_check >= settings.check_interval:
                last_check = anyio.current_time()
                if session.closed.is_set() or (await session.monitor.check()).is_dead:
                    return False
            await anyio.sleep(settings.poll_interval)

    async def close(self, session_id: str) -> None:
        """Close a session: ask the UI to exit, then terminate it.

        Raises:
            UnknownSession: If the session does not exist or is already closed.
        """
        session = await self._require_active(session_id)
        if not await self._teardown(session, graceful=True, reason="closed by caller"):
            raise InactiveSession(session_id)

    async def close_all(self) -> None:
        """Tear down every session and remove every workspace immediately."""
        async with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            await self._teardown(session, graceful=False, reason="registry shutdown", defer_removal=False)
            # Closed sessions may still be waiting for their deferred removal.
            await self._remove(session)

    async def sweep_once(self) -> list[str]:
        """Tear down every active session whose UI is gone.

        Returns:
            IDs of the sessions that were purged.
        """
        async with self._lock:
            sessions = [s for s in self._sessions.values() if s.is_active]

        purged: list[str] = []
        for session in sessions:
            liveness = await session.monitor.check()
            if liveness.is_dead:
                reason = f"heartbeat {liveness.value}"
            elif session.exited_abnormally:
                reason = f"UI exit code {session.process.returncode if session.process else None}"
            else:
                continue
            if await self._teardown(session, graceful=False, reason=reason, defer_removal=False):
                purged.append(session.session_id)
        return purged

    async def _sweep_loop(self) -> None:
        while True:
            await anyio.sleep(self._settings.sweep_interval)
            try:
                purged = await self.sweep_once()
            except Exception:
                logger.exception("Session sweep failed")
                continue
            if purged:
                logger.info("Sweep purged dead sessions: %s", purged)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def _teardown(
        self,
        session: ChatSession,
        *,
        graceful: bool,
        reason: str,
        defer_removal: bool | None = None,
    ) -> bool:
        """Deactivate a session exactly once.

        Returns:
            True if this call performed the teardown, False if another caller
            already had.
        """
        async with self._lock:
            if session.state not in (SessionState.STARTING, SessionState.ACTIVE):
                return False
            session.state = SessionState.CLOSING
        session.closed.set()
        logger.info("Closing chat session %s: %s", session.session_id, reason)

        settings = self._settings
        with anyio.CancelScope(shield=True):
            process = session.process
            try:
                if graceful:
                    await session.workspace.request_close()
                    if process is not None and process.is_running:
                        with anyio.move_on_after(settings.close_grace):
                            await process.wait()
                if process is not None and process.is_running:
                    await process.terminate(settings.terminate_grace)
            except OSError as e:
                logger.warning("Failed to terminate UI of session %s: %s", session.session_id, e)
            finally:
                async with self._lock:
                    session.state = SessionState.CLOSED

            if defer_removal is None:
                defer_removal = graceful
            if defer_removal and self._task_group is not None:
                self._task_group.start_soon(self._remove_later, session)
            else:
                await self._remove(session)
        return True

    async def _remove_later(self, session: ChatSession) -> None:
        await anyio.sleep(self._settings.cleanup_delay)
        with anyio.CancelScope(shield=True):
            await self._remove(session)

    async def _remove(self, session: ChatSession) -> None:
        try:
            await session.workspace.remove()
        except OSError as e:
            logger.warning("Failed to remove workspace of session %s: %s", session.session_id, e)
        async with self._lock:
            if self._sessions.get(session.session_id) is session:
                del self._sessions[session.session_id]
