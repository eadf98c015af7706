"""Pytest configuration and fixtures for discordrpc tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from discordrpc.core.config import ClientConfig
from discordrpc.ipc import client as client_module
from discordrpc.ipc.client import RPCClient
from discordrpc.ipc.exceptions import ErrorCode, RPCConnectionError
from discordrpc.ipc.protocol import Message, OpCode

READY_PAYLOAD: dict[str, Any] = {
    "cmd": "DISPATCH",
    "evt": "READY",
    "nonce": None,
    "data": {
        "v": 1,
        "config": {
            "cdn_host": "cdn.discordapp.com",
            "api_endpoint": "//discord.com/api",
            "environment": "production",
        },
        "user": {
            "id": "80351110224678912",
            "username": "nelly",
            "discriminator": "0",
            "global_name": "Nelly",
            "avatar": None,
        },
    },
}


class FakeTransport:
    """In-memory stand-in for IPCTransport."""

    def __init__(self, connect_error: Exception | None = None) -> None:
        self.connect_error = connect_error
        self.connected = False
        self.connect_calls: list[int | None] = []
        self.sent: list[tuple[int, Any]] = []
        self.close_calls = 0
        self._on_message: Callable[[Message], None] | None = None
        self._on_close: Callable[[], None] | None = None

    def set_message_handler(self, handler: Callable[[Message], None]) -> None:
        self._on_message = handler

    def set_close_handler(self, handler: Callable[[], None]) -> None:
        self._on_close = handler

    async def connect(self, index: int | None = None) -> None:
        self.connect_calls.append(index)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def send(self, opcode: int, payload: Any) -> None:
        if not self.connected:
            raise RPCConnectionError("not connected", code=ErrorCode.NOT_CONNECTED)
        self.sent.append((int(opcode), payload))

    def close(self) -> None:
        self.connected = False
        self.close_calls += 1

    def deliver(self, opcode: int, payload: Any) -> None:
        """Simulate an incoming message."""
        assert self._on_message is not None
        self._on_message(Message(opcode=int(opcode), payload=payload))

    def drop(self) -> None:
        """Simulate the peer closing the socket."""
        self.connected = False
        assert self._on_close is not None
        self._on_close()

    def frames(self) -> list[dict[str, Any]]:
        return [payload for opcode, payload in self.sent if opcode == OpCode.FRAME]


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0)


async def login_ready(client: RPCClient, transport: FakeTransport) -> None:
    """Drive a client through login with a READY reply."""
    task = asyncio.create_task(client.login())
    await wait_until(lambda: any(op == OpCode.HANDSHAKE for op, _ in transport.sent))
    transport.deliver(OpCode.FRAME, READY_PAYLOAD)
    await task


@pytest.fixture
def fast_teardown(monkeypatch: pytest.MonkeyPatch) -> None:
    """Shorten the presence-clear grace period used by destroy()."""
    monkeypatch.setattr(client_module, "TEARDOWN_GRACE", 0.01)
    monkeypatch.setattr(client_module, "TEARDOWN_FLUSH_DELAY", 0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        client_id="123456789012345678",
        connection_timeout=0.2,
        request_timeout=0.2,
        heartbeat_interval=30.0,
    )


@pytest.fixture
def client(config: ClientConfig, transport: FakeTransport) -> RPCClient:
    return RPCClient(config, transport=transport, pid=4242)  # type: ignore[arg-type]


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a mock aiohttp response usable as an async context manager."""
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    if text_data is not None:
        response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response
