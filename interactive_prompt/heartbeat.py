"""Heartbeat files: liveness of a UI process we have no connection to.

The UI rewrites its heartbeat file every heartbeat_interval seconds. The
parent only looks at the file's modification time, so liveness works even
when the UI runs in another terminal emulator or login session.
"""

from __future__ import annotations

import os
import time
from datetime import datetime
from enum import Enum
from pathlib import Path

import anyio

from interactive_prompt._logger import get_logger

logger = get_logger(__name__)


class Liveness(str, Enum):
    """Result of one heartbeat check."""

    STARTING = "starting"
    """No heartbeat yet, still inside the startup grace period."""

    FRESH = "fresh"
    """Heartbeat modified within the staleness threshold."""

    STALE = "stale"
    """Heartbeat exists but is older than the staleness threshold."""

    MISSING = "missing"
    """Heartbeat vanished, never appeared within the grace period, or is unreadable."""

    @property
    def is_dead(self) -> bool:
        return self in (Liveness.STALE, Liveness.MISSING)


class HeartbeatMonitor:
    """Classifies a heartbeat file as fresh, stale or missing.

    The monitor remembers whether it has ever seen the file, so a file that
    disappears after having existed is reported dead immediately instead of
    being mistaken for a UI that is still starting.
    """

    def __init__(self, path: Path, *, stale_threshold: float, startup_grace: float) -> None:
        self.path = Path(path)
        self.stale_threshold = stale_threshold
        self.startup_grace = startup_grace
        self._started = time.monotonic()
        self._seen = False
        self.last_beat: datetime | None = None

    @property
    def seen(self) -> bool:
        return self._seen

    async def check(self) -> Liveness:
        try:
            st = await anyio.Path(self.path).stat()
        except FileNotFoundError:
            if self._seen:
                return Liveness.MISSING
            if time.monotonic() - self._started > self.startup_grace:
                return Liveness.MISSING
            return Liveness.STARTING
        except OSError as e:
            logger.warning("Heartbeat check failed for %s: %s", self.path, e)
            return Liveness.MISSING

        self._seen = True
        self.last_beat = datetime.fromtimestamp(st.st_mtime)
        if time.time() - st.st_mtime > self.stale_threshold:
            return Liveness.STALE
        return Liveness.FRESH

    async def wait_until_dead(self, interval: float) -> Liveness:
        """Poll until the UI is presumed dead and return the final state."""
        while True:
            liveness = await self.check()
            if liveness.is_dead:
                return liveness
            await anyio.sleep(interval)


class HeartbeatWriter:
    """UI-side heartbeat: rewrites the file until cancelled."""

    def __init__(self, path: Path, interval: float) -> None:
        self.path = Path(path)
        self.interval = interval

    async def beat(self) -> None:
        try:
            await anyio.Path(self.path).write_text(str(int(time.time() * 1000)), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write heartbeat %s: %s", self.path, e)

    async def run(self) -> None:
        while True:
            await self.beat()
            await anyio.sleep(self.interval)

    def remove(self) -> None:
        """Delete the heartbeat so the parent sees the UI leave at once."""
        try:
            os.unlink(self.path)
        except OSError:
            pass
