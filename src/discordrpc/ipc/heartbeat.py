"""Periodic keep-alive while the session is ready."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from discordrpc.ipc.exceptions import RPCError
from discordrpc.ipc.protocol import HEARTBEAT_INTERVAL

logger = logging.getLogger(__name__)


class HeartbeatScheduler:
    """
    Calls ``beat`` every ``interval`` seconds on the running event loop.

    The task is cancelled by ``stop``; it holds no reference that would keep
    the loop alive after the owning client is gone.
    """

    def __init__(self, beat: Callable[[], None], interval: float = HEARTBEAT_INTERVAL) -> None:
        self.interval = interval
        self._beat = beat
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start (or restart) the heartbeat."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="discord-ipc-heartbeat"
        )

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self._beat()
            except RPCError as e:
                logger.warning(f"Heartbeat failed: {e}")
