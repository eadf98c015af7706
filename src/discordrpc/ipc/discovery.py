"""
IPC Endpoint Discovery.

Locates the desktop app's IPC endpoint and opens a stream connection to it.
The app listens on ``discord-ipc-<slot>`` for the first free slot in 0-9,
as a named pipe on Windows or a Unix domain socket in one of several
runtime directories elsewhere (sandboxed Flatpak/Snap installs use their
own subdirectory).
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import PurePosixPath

from discordrpc.ipc.exceptions import ErrorCode, RPCConnectionError
from discordrpc.ipc.protocol import MAX_PIPE_INDEX

logger = logging.getLogger(__name__)

IPC_NAME_PREFIX = "discord-ipc-"

# Windows named pipe prefix (\\?\pipe\)
WINDOWS_PIPE_PREFIX = "\\\\?\\pipe\\"

# Sandboxed installs keep their socket below XDG_RUNTIME_DIR
FLATPAK_SUBDIR = ("app", "com.discordapp.Discord")
SNAP_SUBDIR = ("snap.discord",)

# Per-path connection timeout (seconds)
DEFAULT_CONNECTION_TIMEOUT = 10.0

StreamPair = tuple[asyncio.StreamReader, asyncio.StreamWriter]


def candidate_paths(
    index: int,
    platform: str | None = None,
    env: Mapping[str, str] | None = None,
) -> list[str]:
    """
    Build the ordered list of endpoint paths for one slot.

    Args:
        index: Slot number
        platform: ``sys.platform`` value (defaults to the running platform)
        env: Environment variables (defaults to ``os.environ``)

    Returns:
        Candidate paths, most likely first
    """
    platform = platform or sys.platform
    env = os.environ if env is None else env
    name = f"{IPC_NAME_PREFIX}{index}"

    if platform == "win32":
        return [f"{WINDOWS_PIPE_PREFIX}{name}"]

    dirs: list[str] = []
    runtime_dir = env.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        dirs.append(runtime_dir)
        dirs.append(str(PurePosixPath(runtime_dir, *FLATPAK_SUBDIR)))
        dirs.append(str(PurePosixPath(runtime_dir, *SNAP_SUBDIR)))

    for var in ("TMPDIR", "TMP", "TEMP"):
        value = env.get(var)
        if value:
            dirs.append(value)

    if not dirs:
        dirs.append("/tmp")

    paths: list[str] = []
    for directory in dirs:
        path = str(PurePosixPath(directory, name))
        if path not in paths:
            paths.append(path)
    return paths


class SocketConnector:
    """
    Sequential search over (slot, candidate path) for a live endpoint.

    Handles:
    - Scanning slots 0-9, or a single requested slot
    - Falling back across candidate directories within a slot
    - Per-attempt connection timeout
    """

    def __init__(
        self,
        timeout: float = DEFAULT_CONNECTION_TIMEOUT,
        max_index: int = MAX_PIPE_INDEX,
        platform: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_index = max_index
        self.platform = platform or sys.platform
        self._env = dict(os.environ if env is None else env)

    def paths_for(self, index: int) -> list[str]:
        """Candidate paths for ``index`` on this connector's platform."""
        return candidate_paths(index, self.platform, self._env)

    async def connect(self, index: int | None = None) -> StreamPair:
        """
        Connect to the first reachable endpoint.

        Args:
            index: Only try this slot; scan all slots when None

        Returns:
            Connected (reader, writer) pair

        Raises:
            RPCConnectionError: If no slot yields a connection
        """
        if index is not None:
            return await self.connect_slot(index)

        for slot in range(self.max_index + 1):
            try:
                return await self.connect_slot(slot)
            except RPCConnectionError as e:
                logger.debug(f"Slot {slot} unavailable: {e.message}")

        scanned = self.max_index + 1
        raise RPCConnectionError(
            f"Could not connect to Discord. No running instance found (scanned {scanned} pipes).",
            code=ErrorCode.NO_PEER_FOUND,
            details={"scanned": scanned},
        )

    async def connect_slot(self, index: int) -> StreamPair:
        """
        Try every candidate path of one slot in order.

        Raises:
            RPCConnectionError: If no path of the slot accepts a connection
        """
        for path in self.paths_for(index):
            logger.debug(f"Trying IPC endpoint {path}")
            try:
                streams = await asyncio.wait_for(self.open_path(path), timeout=self.timeout)
            except (FileNotFoundError, ConnectionRefusedError):
                continue
            except asyncio.TimeoutError:
                logger.debug(f"Connection to {path} timed out after {self.timeout}s")
                continue
            except OSError as e:
                raise RPCConnectionError(
                    f"IPC connection error: {e}",
                    code=ErrorCode.CONNECTION_FAILED,
                    details={"path": path, "index": index},
                ) from e

            logger.info(f"Connected to IPC endpoint {path}")
            return streams

        raise RPCConnectionError(
            f"No Discord IPC pipe found at index {index}.",
            code=ErrorCode.CONNECTION_REFUSED,
            details={"index": index},
        )

    async def open_path(self, path: str) -> StreamPair:
        """Open a stream connection to a single endpoint path."""
        if self.platform == "win32":
            return await _open_windows_pipe(path)
        return await asyncio.open_unix_connection(path)


async def _open_windows_pipe(path: str) -> StreamPair:
    """Connect to a Windows named pipe (requires the proactor event loop)."""
    loop = asyncio.get_running_loop()
    connected: asyncio.Future[StreamPair] = loop.create_future()

    def client_connected_cb(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        connected.set_result((reader, writer))

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader, client_connected_cb)
    await loop.create_pipe_connection(lambda: protocol, path)  # type: ignore[attr-defined]
    return await connected
