"""
RPC Client.

Drives the session with the Discord desktop app over the IPC transport:
handshake, nonce-correlated requests, server-pushed events and heartbeats.
Provides a high-level API for Rich Presence, OAuth2, subscriptions and
lobbies.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from discordrpc import oauth
from discordrpc.core.config import ClientConfig
from discordrpc.ipc.correlator import RequestCorrelator
from discordrpc.ipc.discovery import SocketConnector
from discordrpc.ipc.exceptions import (
    ErrorCode,
    RPCCommandError,
    RPCConnectionError,
    RPCError,
    RPCStateError,
    RPCTimeoutError,
)
from discordrpc.ipc.heartbeat import HeartbeatScheduler
from discordrpc.ipc.protocol import (
    Command,
    LobbyType,
    Message,
    OpCode,
    RPCEvent,
    RPCFrame,
    Scope,
    handshake_payload,
    new_nonce,
    request_payload,
)
from discordrpc.ipc.transport import IPCTransport
from discordrpc.models import (
    Activity,
    AuthenticateResponse,
    AuthorizeResponse,
    ReadyData,
    TokenExchangeResponse,
)
from discordrpc.utils.cdn import avatar_url

logger = logging.getLogger(__name__)

EventCallback = Callable[..., None]

# Upper bound on the presence clear attempted by destroy() (seconds)
TEARDOWN_GRACE = 1.0

# Pause after the presence clear so the frame is flushed (seconds)
TEARDOWN_FLUSH_DELAY = 0.05


class ConnectionState(str, Enum):
    """Session lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    READY = "ready"


class ClientEvent(str, Enum):
    """
    Notifications delivered to observers.

    Callback signatures:
        READY(data: ReadyData)
        CONNECTED()
        DISCONNECTED(reason: str | None)
        ERROR(error: RPCError)
        STATE_CHANGE(state: ConnectionState)
        RPC_EVENT(event: str, data: dict)
    """

    READY = "ready"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    STATE_CHANGE = "state_change"
    RPC_EVENT = "rpc_event"


@dataclass
class Subscription:
    """Handle returned by ``RPCClient.subscribe``."""

    client: RPCClient
    event: str
    args: dict[str, Any] = field(default_factory=dict)

    async def unsubscribe(self) -> None:
        """Send UNSUBSCRIBE for the same event and arguments."""
        await self.client.request(Command.UNSUBSCRIBE, self.args, self.event)


def _value(item: Enum | str) -> str:
    return item.value if isinstance(item, Enum) else item


def _without_none(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class RPCClient:
    """
    Discord RPC client.

    Provides:
    - Connection lifecycle (login / destroy) with state notifications
    - Request/response correlation by nonce, with per-request timeout
    - Subscription event delivery
    - Heartbeat while ready

    All state is owned by the event loop the client runs on.

    Example:
        client = RPCClient(ClientConfig(client_id="1234"))
        ready = await client.login()
        await client.set_activity(PresenceBuilder().set_state("In menus").build())
        ...
        await client.destroy()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: IPCTransport | None = None,
        pid: int | None = None,
    ) -> None:
        """
        Initialize RPC client.

        Args:
            config: Client configuration (defaults apply when omitted)
            transport: Transport to use (built from config when omitted)
            pid: Process id reported with activities (defaults to this process)
        """
        self._config = config or ClientConfig()
        self._transport = transport or IPCTransport(
            SocketConnector(timeout=self._config.connection_timeout)
        )
        self._transport.set_message_handler(self._handle_message)
        self._transport.set_close_handler(self._handle_transport_close)

        self._pending = RequestCorrelator(self._config.request_timeout)
        self._heartbeat = HeartbeatScheduler(self.ping, self._config.heartbeat_interval)

        self._state = ConnectionState.DISCONNECTED
        self._client_id = self._config.client_id
        self._pid = os.getpid() if pid is None else pid
        self._handshake: asyncio.Future[ReadyData] | None = None
        self._login_attempt: object | None = None

        self._listeners: dict[ClientEvent, list[tuple[EventCallback, bool]]] = {
            event: [] for event in ClientEvent
        }

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        """Whether the client can send commands."""
        return self._state is ConnectionState.READY

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def pending_requests(self) -> int:
        """Number of requests awaiting a response."""
        return len(self._pending)

    # Observers

    def on(self, event: ClientEvent | str, callback: EventCallback) -> None:
        """Register ``callback`` for ``event``."""
        self._listeners[ClientEvent(event)].append((callback, False))

    def once(self, event: ClientEvent | str, callback: EventCallback) -> None:
        """Register ``callback`` for the next ``event`` only."""
        self._listeners[ClientEvent(event)].append((callback, True))

    def off(self, event: ClientEvent | str, callback: EventCallback) -> bool:
        """
        Remove a callback.

        Returns:
            True if callback was removed
        """
        listeners = self._listeners[ClientEvent(event)]
        for entry in listeners:
            if entry[0] == callback:
                listeners.remove(entry)
                return True
        return False

    def _emit(self, event: ClientEvent, *args: Any) -> None:
        listeners = self._listeners[event]
        for entry in list(listeners):
            callback, once = entry
            if once and entry in listeners:
                listeners.remove(entry)
            try:
                callback(*args)
            except Exception as e:
                logger.exception(f"Callback error for {event.value}: {e}")

    def _set_state(self, state: ConnectionState) -> None:
        if self._state is state:
            return
        logger.debug(f"State {self._state.value} -> {state.value}")
        self._state = state
        self._emit(ClientEvent.STATE_CHANGE, state)

    # Connection lifecycle

    async def login(self, client_id: str | None = None) -> ReadyData:
        """
        Connect to the desktop app and perform the handshake.

        Args:
            client_id: Application client ID (defaults to the configured one)

        Returns:
            READY data with the connected user

        Raises:
            RPCStateError: If the client is not disconnected
            RPCConnectionError: If no endpoint is reachable or the link drops
            RPCTimeoutError: If READY does not arrive in time
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise RPCStateError(
                "Client is already connected or connecting. Call destroy() first.",
                details={"state": self._state.value},
            )

        client_id = client_id or self._client_id
        if not client_id:
            raise ValueError("A client_id is required to log in")
        self._client_id = client_id

        attempt = object()
        self._login_attempt = attempt
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._transport.connect(self._config.pipe_index)
        except BaseException:
            if self._login_attempt is attempt:
                self._login_attempt = None
                self._set_state(ConnectionState.DISCONNECTED)
            raise

        # destroy() ran while connecting
        if self._login_attempt is not attempt:
            if self._state is ConnectionState.DISCONNECTED:
                self._transport.close()
            raise RPCConnectionError(
                "Login aborted by destroy().", code=ErrorCode.CONNECTION_LOST
            )

        self._set_state(ConnectionState.CONNECTED)
        self._emit(ClientEvent.CONNECTED)

        handshake: asyncio.Future[ReadyData] = asyncio.get_running_loop().create_future()
        self._handshake = handshake
        timeout = self._config.connection_timeout
        try:
            self._transport.send(OpCode.HANDSHAKE, handshake_payload(client_id))
            return await asyncio.wait_for(handshake, timeout=timeout)
        except asyncio.TimeoutError:
            self._teardown("Handshake timed out.")
            raise RPCTimeoutError("Handshake timed out.", details={"timeout": timeout}) from None
        except BaseException:
            self._teardown("Handshake failed.")
            raise

    async def destroy(self) -> None:
        """
        Disconnect from the desktop app.

        Clears the activity first when ready; failures of that step are
        ignored. Pending requests fail with RPCConnectionError.
        """
        if self._state is ConnectionState.READY:
            try:
                await asyncio.wait_for(self.clear_activity(), timeout=TEARDOWN_GRACE)
                await asyncio.sleep(TEARDOWN_FLUSH_DELAY)
            except (RPCError, asyncio.TimeoutError) as e:
                logger.warning(f"Could not clear activity during teardown: {e}")

        self._teardown("Client destroyed.")

    def _teardown(self, reason: str) -> None:
        self._heartbeat.stop()
        self._login_attempt = None

        handshake, self._handshake = self._handshake, None
        if handshake is not None and not handshake.done():
            handshake.set_exception(RPCConnectionError(reason, code=ErrorCode.CONNECTION_LOST))

        failed = self._pending.fail_all(reason)
        if failed:
            logger.debug(f"Failed {failed} pending request(s): {reason}")

        self._transport.close()
        self._set_state(ConnectionState.DISCONNECTED)

    # Commands

    async def request(
        self,
        command: Command | str,
        args: dict[str, Any] | None = None,
        event: RPCEvent | str | None = None,
    ) -> dict[str, Any]:
        """
        Send a command and wait for its response.

        Args:
            command: Command to send
            args: Command arguments
            event: Event name (for SUBSCRIBE/UNSUBSCRIBE)

        Returns:
            The ``data`` object of the response

        Raises:
            RPCStateError: If the client is not ready
            RPCTimeoutError: If no response arrives in time
            RPCCommandError: If the desktop app rejects the command
            RPCConnectionError: If the session ends first
        """
        if self._state is not ConnectionState.READY:
            raise RPCStateError(
                "Client is not ready. Call login() first.",
                details={"state": self._state.value},
            )

        cmd = _value(command)
        pending = self._pending.register(cmd)
        try:
            self._transport.send(
                OpCode.FRAME, request_payload(cmd, args, event, pending.nonce)
            )
        except Exception:
            self._pending.discard(pending.nonce)
            raise

        try:
            return await pending.future
        except asyncio.CancelledError:
            self._pending.discard(pending.nonce)
            raise

    async def set_activity(self, activity: Activity | Mapping[str, Any]) -> dict[str, Any]:
        """Set the Rich Presence activity."""
        payload = activity.to_payload() if isinstance(activity, Activity) else dict(activity)
        return await self.request(Command.SET_ACTIVITY, {"pid": self._pid, "activity": payload})

    async def clear_activity(self) -> dict[str, Any]:
        """Clear the Rich Presence activity."""
        return await self.request(Command.SET_ACTIVITY, {"pid": self._pid, "activity": None})

    async def authorize(
        self,
        client_id: str,
        scopes: Iterable[Scope | str],
        **extra: Any,
    ) -> AuthorizeResponse:
        """Ask the user to authorize the application for ``scopes``."""
        data = await self.request(
            Command.AUTHORIZE,
            {"client_id": client_id, "scopes": [_value(s) for s in scopes], **extra},
        )
        return AuthorizeResponse.model_validate(data)

    async def authenticate(self, access_token: str) -> AuthenticateResponse:
        """Authenticate with an OAuth2 access token."""
        data = await self.request(Command.AUTHENTICATE, {"access_token": access_token})
        return AuthenticateResponse.model_validate(data)

    async def exchange_code(
        self,
        client_id: str,
        client_secret: str,
        code: str,
        redirect_uri: str,
    ) -> TokenExchangeResponse:
        """Exchange an AUTHORIZE code for an access token (HTTP, not IPC)."""
        return await oauth.exchange_code(client_id, client_secret, code, redirect_uri)

    def get_avatar_url(self, user_id: str, avatar_hash: str | None = None, **options: Any) -> str:
        """CDN URL of a user's avatar (see ``avatar_url`` for options)."""
        return avatar_url(user_id, avatar_hash, **options)

    async def subscribe(
        self,
        event: RPCEvent | str,
        args: dict[str, Any] | None = None,
    ) -> Subscription:
        """
        Subscribe to an RPC event.

        Events arrive through the RPC_EVENT notification.
        """
        evt = _value(event)
        sub_args = args or {}
        await self.request(Command.SUBSCRIBE, sub_args, evt)
        return Subscription(client=self, event=evt, args=sub_args)

    async def get_relationships(self) -> dict[str, Any]:
        """Get the user's relationships (requires authentication)."""
        return await self.request(Command.GET_RELATIONSHIPS)

    # Lobby commands

    async def create_lobby(
        self,
        lobby_type: LobbyType,
        capacity: int,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            Command.CREATE_LOBBY,
            _without_none({"type": int(lobby_type), "capacity": capacity, "metadata": metadata}),
        )

    async def update_lobby(
        self,
        lobby_id: str,
        *,
        lobby_type: LobbyType | None = None,
        owner_id: str | None = None,
        capacity: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            Command.UPDATE_LOBBY,
            _without_none(
                {
                    "id": lobby_id,
                    "type": int(lobby_type) if lobby_type is not None else None,
                    "owner_id": owner_id,
                    "capacity": capacity,
                    "metadata": metadata,
                }
            ),
        )

    async def delete_lobby(self, lobby_id: str) -> dict[str, Any]:
        return await self.request(Command.DELETE_LOBBY, {"id": lobby_id})

    async def connect_to_lobby(self, lobby_id: str, secret: str) -> dict[str, Any]:
        return await self.request(Command.CONNECT_TO_LOBBY, {"id": lobby_id, "secret": secret})

    async def disconnect_from_lobby(self, lobby_id: str) -> dict[str, Any]:
        return await self.request(Command.DISCONNECT_FROM_LOBBY, {"id": lobby_id})

    async def send_to_lobby(self, lobby_id: str, data: Any) -> dict[str, Any]:
        return await self.request(Command.SEND_TO_LOBBY, {"id": lobby_id, "data": data})

    async def update_lobby_member(
        self,
        lobby_id: str,
        user_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            Command.UPDATE_LOBBY_MEMBER,
            _without_none({"lobby_id": lobby_id, "user_id": user_id, "metadata": metadata}),
        )

    def ping(self) -> None:
        """Send a keep-alive ping if the transport is connected."""
        if self._transport.connected:
            self._transport.send(OpCode.PING, {"nonce": new_nonce()})

    # Incoming messages

    def _handle_message(self, message: Message) -> None:
        """Route an incoming message."""
        if message.opcode == OpCode.CLOSE:
            payload = message.payload if isinstance(message.payload, dict) else {}
            reason = payload.get("message")
            logger.info(f"Desktop app closed the session: {reason} (code {payload.get('code')})")
            self._emit(ClientEvent.DISCONNECTED, reason)
            self._teardown(reason or "Connection closed by peer.")
            return

        if message.opcode == OpCode.PING:
            self._transport.send(OpCode.PONG, message.payload)
            return

        if message.opcode != OpCode.FRAME:
            return

        frame = RPCFrame.from_payload(message.payload)

        if frame.evt == RPCEvent.READY.value:
            self._handle_ready(frame)
            return

        if frame.is_error and not frame.nonce:
            self._emit(
                ClientEvent.ERROR,
                RPCCommandError(frame.error_message or "Unknown RPC error", rpc_code=frame.error_code),
            )
            return

        if self._pending.resolve(frame):
            return

        if frame.cmd == Command.DISPATCH.value and frame.evt:
            self._emit(ClientEvent.RPC_EVENT, frame.evt, frame.data)
            return

        logger.debug(f"Dropping unmatched frame (cmd={frame.cmd}, evt={frame.evt}, nonce={frame.nonce})")

    def _handle_ready(self, frame: RPCFrame) -> None:
        handshake, self._handshake = self._handshake, None
        try:
            data = ReadyData.model_validate(frame.data)
        except ValidationError as e:
            logger.error(f"Invalid READY payload: {e}")
            if handshake is not None and not handshake.done():
                handshake.set_exception(
                    RPCConnectionError("Invalid READY payload", details={"error": str(e)})
                )
            return

        if handshake is not None and not handshake.done():
            self._set_state(ConnectionState.READY)
            self._heartbeat.start()
            handshake.set_result(data)
            user = data.user.username if data.user else "unknown user"
            logger.info(f"RPC session ready ({user})")

        self._emit(ClientEvent.READY, data)

    def _handle_transport_close(self) -> None:
        was_connected = self._state is not ConnectionState.DISCONNECTED
        self._teardown("Transport connection closed.")
        if was_connected:
            self._emit(ClientEvent.DISCONNECTED, "Connection closed unexpectedly.")

    async def __aenter__(self) -> RPCClient:
        """Async context manager entry - log in."""
        if self._state is ConnectionState.DISCONNECTED:
            await self.login()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit - destroy."""
        await self.destroy()


def create_client(client_id: str, **options: Any) -> RPCClient:
    """
    Create an RPC client for ``client_id``.

    Args:
        client_id: Application client ID
        **options: Other ClientConfig fields

    Returns:
        Configured RPCClient ready to log in
    """
    return RPCClient(ClientConfig(client_id=client_id, **options))
