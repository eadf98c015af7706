"""
Unit tests for the IPC transport against a real Unix socket.
"""

from __future__ import annotations

import asyncio
import struct
import sys
import tempfile
from pathlib import Path

import pytest
from conftest import wait_until

from discordrpc.ipc import (
    ErrorCode,
    IPCTransport,
    Message,
    OpCode,
    RPCConnectionError,
    SocketConnector,
    encode,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="Unix domain sockets only")


class PeerServer:
    """Listening socket standing in for the desktop app."""

    def __init__(self, directory: str) -> None:
        self.path = str(Path(directory) / "discord-ipc-0")
        self.connection: asyncio.Future[tuple[asyncio.StreamReader, asyncio.StreamWriter]] | None = None
        self._server: asyncio.AbstractServer | None = None

    async def start(self) -> None:
        self.connection = asyncio.get_running_loop().create_future()

        async def on_client(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            self.connection.set_result((reader, writer))

        self._server = await asyncio.start_unix_server(on_client, self.path)

    async def accepted(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.wait_for(self.connection, timeout=1.0)

    async def stop(self) -> None:
        if self.connection.done():
            self.connection.result()[1].close()
        self._server.close()
        await self._server.wait_closed()


def make_transport(directory: str) -> IPCTransport:
    connector = SocketConnector(timeout=1.0, platform="linux", env={"TMPDIR": directory})
    return IPCTransport(connector)


class TestIPCTransport:
    """Tests for IPCTransport."""

    def test_transport_initialization(self) -> None:
        """Transport should start disconnected."""
        transport = IPCTransport()
        assert transport.connected is False
        assert isinstance(transport.connector, SocketConnector)

    def test_send_when_not_connected(self) -> None:
        """send() should fail with NOT_CONNECTED before connect()."""
        transport = IPCTransport()
        with pytest.raises(RPCConnectionError) as exc_info:
            transport.send(OpCode.PING, {})
        assert exc_info.value.code == ErrorCode.NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_send_writes_framed_message(self) -> None:
        """Sent messages should arrive with the 8-byte header."""
        with tempfile.TemporaryDirectory() as tmpdir:
            server = PeerServer(tmpdir)
            await server.start()
            transport = make_transport(tmpdir)
            try:
                await transport.connect()
                assert transport.connected

                transport.send(OpCode.HANDSHAKE, {"v": 1, "client_id": "42"})
                await transport.drain()

                reader, _ = await server.accepted()
                header = await asyncio.wait_for(reader.readexactly(8), timeout=1.0)
                opcode, length = struct.unpack("<II", header)
                body = await asyncio.wait_for(reader.readexactly(length), timeout=1.0)

                assert opcode == OpCode.HANDSHAKE
                assert body == b'{"v":1,"client_id":"42"}'
            finally:
                transport.close()
                await server.stop()

    @pytest.mark.asyncio
    async def test_split_messages_are_reassembled(self) -> None:
        """A message written in pieces should be delivered once, whole."""
        with tempfile.TemporaryDirectory() as tmpdir:
            server = PeerServer(tmpdir)
            await server.start()
            transport = make_transport(tmpdir)
            received: list[Message] = []
            transport.set_message_handler(received.append)
            try:
                await transport.connect()
                _, writer = await server.accepted()

                data = encode(OpCode.FRAME, {"cmd": "DISPATCH", "evt": "READY"})
                batch = encode(OpCode.PING, {"n": 1}) + encode(OpCode.PING, {"n": 2})
                writer.write(data[:5])
                await writer.drain()
                await asyncio.sleep(0.01)
                writer.write(data[5:] + batch)
                await writer.drain()

                await wait_until(lambda: len(received) == 3)

                assert received[0] == Message(OpCode.FRAME, {"cmd": "DISPATCH", "evt": "READY"})
                assert [m.payload for m in received[1:]] == [{"n": 1}, {"n": 2}]
            finally:
                transport.close()
                await server.stop()

    @pytest.mark.asyncio
    async def test_peer_close_notifies_handler(self) -> None:
        """EOF from the peer should call the close handler once."""
        with tempfile.TemporaryDirectory() as tmpdir:
            server = PeerServer(tmpdir)
            await server.start()
            transport = make_transport(tmpdir)
            closed: list[bool] = []
            transport.set_close_handler(lambda: closed.append(True))
            try:
                await transport.connect()
                _, writer = await server.accepted()
                writer.close()

                await wait_until(lambda: bool(closed))

                assert closed == [True]
                assert transport.connected is False
            finally:
                transport.close()
                await server.stop()

    @pytest.mark.asyncio
    async def test_local_close_does_not_notify(self) -> None:
        """close() should not call the close handler."""
        with tempfile.TemporaryDirectory() as tmpdir:
            server = PeerServer(tmpdir)
            await server.start()
            transport = make_transport(tmpdir)
            closed: list[bool] = []
            transport.set_close_handler(lambda: closed.append(True))
            try:
                await transport.connect()
                await server.accepted()

                transport.close()
                await asyncio.sleep(0.05)

                assert closed == []
                assert transport.connected is False
            finally:
                await server.stop()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_reading(self) -> None:
        """An exception in the message handler should not drop later messages."""
        with tempfile.TemporaryDirectory() as tmpdir:
            server = PeerServer(tmpdir)
            await server.start()
            transport = make_transport(tmpdir)
            received: list[Message] = []

            def handler(message: Message) -> None:
                received.append(message)
                if len(received) == 1:
                    raise RuntimeError("boom")

            transport.set_message_handler(handler)
            try:
                await transport.connect()
                _, writer = await server.accepted()
                writer.write(encode(OpCode.FRAME, {"n": 1}) + encode(OpCode.FRAME, {"n": 2}))
                await writer.drain()

                await wait_until(lambda: len(received) == 2)
            finally:
                transport.close()
                await server.stop()
