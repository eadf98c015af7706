"""
Request/response correlation by nonce.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from discordrpc.ipc.exceptions import (
    ErrorCode,
    RPCCommandError,
    RPCConnectionError,
    RPCTimeoutError,
)
from discordrpc.ipc.protocol import RPCFrame, new_nonce

logger = logging.getLogger(__name__)

# Default request timeout (seconds)
DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass
class PendingRequest:
    """One in-flight request awaiting its response."""

    nonce: str
    command: str
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle


class RequestCorrelator:
    """
    Registry of in-flight requests keyed by nonce.

    Every entry leaves the registry exactly once: when its response
    arrives, when its timeout fires, or when the registry is failed in bulk.
    """

    def __init__(self, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> None:
        self.timeout = timeout
        self._pending: dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, nonce: object) -> bool:
        return nonce in self._pending

    def register(self, command: str, timeout: float | None = None) -> PendingRequest:
        """
        Create a pending entry under a fresh nonce.

        Must be called from within the running event loop.
        """
        loop = asyncio.get_running_loop()
        nonce = new_nonce()
        while nonce in self._pending:
            nonce = new_nonce()

        pending = PendingRequest(
            nonce=nonce,
            command=command,
            future=loop.create_future(),
            timer=loop.call_later(
                self.timeout if timeout is None else timeout, self._expire, nonce
            ),
        )
        self._pending[nonce] = pending
        return pending

    def resolve(self, frame: RPCFrame) -> bool:
        """
        Complete the request matching ``frame.nonce``.

        Returns:
            True if a pending request matched
        """
        if frame.nonce is None:
            return False
        pending = self._pending.pop(frame.nonce, None)
        if pending is None:
            return False

        pending.timer.cancel()
        if pending.future.done():
            return True

        if frame.is_error:
            pending.future.set_exception(
                RPCCommandError(
                    frame.error_message or "Command failed",
                    rpc_code=frame.error_code,
                    details={"command": pending.command},
                )
            )
        else:
            pending.future.set_result(frame.data)
        return True

    def discard(self, nonce: str) -> None:
        """Drop an entry without completing it."""
        pending = self._pending.pop(nonce, None)
        if pending is not None:
            pending.timer.cancel()

    def fail_all(self, reason: str) -> int:
        """
        Fail every pending request with RPCConnectionError and empty the registry.

        Returns:
            Number of requests failed
        """
        pending_requests = list(self._pending.values())
        self._pending.clear()
        for pending in pending_requests:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(
                    RPCConnectionError(
                        reason,
                        code=ErrorCode.CONNECTION_LOST,
                        details={"command": pending.command},
                    )
                )
        return len(pending_requests)

    def _expire(self, nonce: str) -> None:
        pending = self._pending.pop(nonce, None)
        if pending is None:
            return
        logger.debug(f"Request {pending.command} ({nonce}) timed out")
        if not pending.future.done():
            pending.future.set_exception(
                RPCTimeoutError(
                    f"Request {pending.command} timed out.",
                    details={"command": pending.command, "nonce": nonce},
                )
            )
