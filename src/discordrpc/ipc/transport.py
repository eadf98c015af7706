"""
IPC Transport Layer.

Owns the single live connection to the desktop app, turns its byte stream
into discrete messages and writes framed messages back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from discordrpc.ipc import codec
from discordrpc.ipc.discovery import SocketConnector
from discordrpc.ipc.exceptions import ErrorCode, RPCConnectionError
from discordrpc.ipc.protocol import Message, OpCode

logger = logging.getLogger(__name__)

# Read size per socket read
READ_CHUNK_SIZE = 65536

MessageHandler = Callable[[Message], None]
CloseHandler = Callable[[], None]


class IPCTransport:
    """
    Transport for the Discord IPC socket.

    Handles:
    - Endpoint discovery (via SocketConnector)
    - Message framing on send, reassembly on receive
    - Close notification when the peer goes away

    Handlers run on the event loop, one message at a time, in arrival order.
    """

    def __init__(self, connector: SocketConnector | None = None) -> None:
        self._connector = connector or SocketConnector()
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._decoder = codec.FrameDecoder()
        self._read_task: asyncio.Task[None] | None = None
        self._on_message: MessageHandler | None = None
        self._on_close: CloseHandler | None = None

    @property
    def connected(self) -> bool:
        """Check if transport is connected."""
        return self._writer is not None and not self._writer.is_closing()

    @property
    def connector(self) -> SocketConnector:
        return self._connector

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Register the handler called for every decoded message."""
        self._on_message = handler

    def set_close_handler(self, handler: CloseHandler) -> None:
        """Register the handler called when the peer closes the connection."""
        self._on_close = handler

    async def connect(self, index: int | None = None) -> None:
        """
        Discover the endpoint and connect to it.

        Args:
            index: Specific slot to use; all slots are scanned when None

        Raises:
            RPCConnectionError: If no endpoint accepts a connection
        """
        self.close()
        reader, writer = await self._connector.connect(index)
        self._reader = reader
        self._writer = writer
        self._read_task = asyncio.get_running_loop().create_task(
            self._read_loop(reader), name="discord-ipc-reader"
        )

    def send(self, opcode: OpCode | int, payload: Any) -> None:
        """
        Frame and write a message.

        Raises:
            RPCConnectionError: If the transport is not connected
        """
        if self._writer is None or self._writer.is_closing():
            raise RPCConnectionError(
                "Cannot send data: transport is not connected.",
                code=ErrorCode.NOT_CONNECTED,
            )
        data = codec.encode(opcode, payload)
        logger.debug(f"Sending opcode {int(opcode)} ({len(data)} bytes)")
        self._writer.write(data)

    async def drain(self) -> None:
        """Wait until the write buffer is flushed."""
        if self._writer is None:
            return
        try:
            await self._writer.drain()
        except OSError as e:
            raise RPCConnectionError(
                f"Send failed: {e}",
                code=ErrorCode.CONNECTION_LOST,
            ) from e

    def close(self) -> None:
        """Close the connection without notifying the close handler."""
        task, self._read_task = self._read_task, None
        if task is not None and task is not _current_task():
            task.cancel()

        writer, self._writer = self._writer, None
        self._reader = None
        if writer is not None:
            writer.close()
        self._decoder.reset()

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Receive chunks until the peer closes or the transport is closed."""
        try:
            while self._reader is reader:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    logger.info("IPC connection closed by peer")
                    break

                for message in self._decoder.feed(chunk):
                    self._deliver(message)
                    if self._reader is not reader:
                        return
        except OSError as e:
            logger.debug(f"IPC receive failed: {e}")

        if self._reader is reader:
            self._handle_lost_connection()

    def _deliver(self, message: Message) -> None:
        logger.debug(f"Received opcode {message.opcode}")
        if self._on_message is None:
            return
        try:
            self._on_message(message)
        except Exception as e:
            logger.exception(f"Message handler error: {e}")

    def _handle_lost_connection(self) -> None:
        writer, self._writer = self._writer, None
        self._reader = None
        self._read_task = None
        self._decoder.reset()
        if writer is not None:
            writer.close()
        if self._on_close is not None:
            self._on_close()


def _current_task() -> asyncio.Task[Any] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
