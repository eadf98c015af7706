"""
RPC Message Protocol.

Defines the opcodes, commands and events of the Discord IPC protocol and
the message types exchanged between the client and the desktop app.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

# Protocol version sent in the handshake
IPC_VERSION = 1

# Header: opcode (u32 LE) + payload length (u32 LE)
HEADER_SIZE = 8

# Heartbeat interval (seconds)
HEARTBEAT_INTERVAL = 30.0

# Highest IPC slot index scanned during discovery
MAX_PIPE_INDEX = 9


class OpCode(IntEnum):
    """Wire opcodes."""

    HANDSHAKE = 0
    FRAME = 1
    CLOSE = 2
    PING = 3
    PONG = 4


class Command(str, Enum):
    """RPC commands sent to and received from the desktop app."""

    DISPATCH = "DISPATCH"
    AUTHORIZE = "AUTHORIZE"
    AUTHENTICATE = "AUTHENTICATE"
    SET_ACTIVITY = "SET_ACTIVITY"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    GET_GUILD = "GET_GUILD"
    GET_GUILDS = "GET_GUILDS"
    GET_CHANNEL = "GET_CHANNEL"
    GET_CHANNELS = "GET_CHANNELS"
    GET_USER = "GET_USER"
    GET_RELATIONSHIPS = "GET_RELATIONSHIPS"
    GET_VOICE_SETTINGS = "GET_VOICE_SETTINGS"
    SET_VOICE_SETTINGS = "SET_VOICE_SETTINGS"
    SELECT_VOICE_CHANNEL = "SELECT_VOICE_CHANNEL"
    SELECT_TEXT_CHANNEL = "SELECT_TEXT_CHANNEL"
    GET_SELECTED_VOICE_CHANNEL = "GET_SELECTED_VOICE_CHANNEL"
    SET_CERTIFIED_DEVICES = "SET_CERTIFIED_DEVICES"
    SET_USER_VOICE_SETTINGS = "SET_USER_VOICE_SETTINGS"
    CAPTURE_SHORTCUT = "CAPTURE_SHORTCUT"
    SEND_ACTIVITY_JOIN_INVITE = "SEND_ACTIVITY_JOIN_INVITE"
    CLOSE_ACTIVITY_REQUEST = "CLOSE_ACTIVITY_REQUEST"
    ACTIVITY_INVITE_USER = "ACTIVITY_INVITE_USER"
    ACCEPT_ACTIVITY_INVITE = "ACCEPT_ACTIVITY_INVITE"
    CREATE_LOBBY = "CREATE_LOBBY"
    UPDATE_LOBBY = "UPDATE_LOBBY"
    DELETE_LOBBY = "DELETE_LOBBY"
    CONNECT_TO_LOBBY = "CONNECT_TO_LOBBY"
    DISCONNECT_FROM_LOBBY = "DISCONNECT_FROM_LOBBY"
    SEND_TO_LOBBY = "SEND_TO_LOBBY"
    SEARCH_LOBBIES = "SEARCH_LOBBIES"
    UPDATE_LOBBY_MEMBER = "UPDATE_LOBBY_MEMBER"
    CONNECT_TO_LOBBY_VOICE = "CONNECT_TO_LOBBY_VOICE"
    DISCONNECT_FROM_LOBBY_VOICE = "DISCONNECT_FROM_LOBBY_VOICE"
    GET_IMAGE = "GET_IMAGE"
    SET_OVERLAY_LOCKED = "SET_OVERLAY_LOCKED"
    OPEN_OVERLAY_ACTIVITY_INVITE = "OPEN_OVERLAY_ACTIVITY_INVITE"
    OPEN_OVERLAY_GUILD_INVITE = "OPEN_OVERLAY_GUILD_INVITE"
    OPEN_OVERLAY_VOICE_SETTINGS = "OPEN_OVERLAY_VOICE_SETTINGS"
    GET_ENTITLEMENTS = "GET_ENTITLEMENTS"
    GET_SKUS = "GET_SKUS"
    START_PURCHASE = "START_PURCHASE"


class RPCEvent(str, Enum):
    """Events dispatched by the desktop app."""

    READY = "READY"
    ERROR = "ERROR"
    GUILD_STATUS = "GUILD_STATUS"
    GUILD_CREATE = "GUILD_CREATE"
    CHANNEL_CREATE = "CHANNEL_CREATE"
    RELATIONSHIP_UPDATE = "RELATIONSHIP_UPDATE"
    VOICE_CHANNEL_SELECT = "VOICE_CHANNEL_SELECT"
    VOICE_STATE_CREATE = "VOICE_STATE_CREATE"
    VOICE_STATE_DELETE = "VOICE_STATE_DELETE"
    VOICE_STATE_UPDATE = "VOICE_STATE_UPDATE"
    VOICE_SETTINGS_UPDATE = "VOICE_SETTINGS_UPDATE"
    VOICE_CONNECTION_STATUS = "VOICE_CONNECTION_STATUS"
    SPEAKING_START = "SPEAKING_START"
    SPEAKING_STOP = "SPEAKING_STOP"
    MESSAGE_CREATE = "MESSAGE_CREATE"
    MESSAGE_UPDATE = "MESSAGE_UPDATE"
    MESSAGE_DELETE = "MESSAGE_DELETE"
    NOTIFICATION_CREATE = "NOTIFICATION_CREATE"
    ACTIVITY_JOIN = "ACTIVITY_JOIN"
    ACTIVITY_JOIN_REQUEST = "ACTIVITY_JOIN_REQUEST"
    ACTIVITY_SPECTATE = "ACTIVITY_SPECTATE"
    ACTIVITY_INVITE = "ACTIVITY_INVITE"
    CURRENT_USER_UPDATE = "CURRENT_USER_UPDATE"
    LOBBY_DELETE = "LOBBY_DELETE"
    LOBBY_UPDATE = "LOBBY_UPDATE"
    LOBBY_MEMBER_CONNECT = "LOBBY_MEMBER_CONNECT"
    LOBBY_MEMBER_DISCONNECT = "LOBBY_MEMBER_DISCONNECT"
    LOBBY_MEMBER_UPDATE = "LOBBY_MEMBER_UPDATE"
    LOBBY_MESSAGE = "LOBBY_MESSAGE"
    CAPTURE_SHORTCUT_CHANGE = "CAPTURE_SHORTCUT_CHANGE"
    OVERLAY = "OVERLAY"
    OVERLAY_UPDATE = "OVERLAY_UPDATE"
    ENTITLEMENT_CREATE = "ENTITLEMENT_CREATE"
    ENTITLEMENT_DELETE = "ENTITLEMENT_DELETE"


class RPCErrorCode(IntEnum):
    """Numeric error codes reported by the desktop app."""

    UNKNOWN_ERROR = 1000
    SERVICE_UNAVAILABLE = 1001
    TRANSACTION_ABORTED = 1002
    INVALID_PAYLOAD = 4000
    INVALID_COMMAND = 4002
    INVALID_GUILD = 4003
    INVALID_EVENT = 4004
    INVALID_CHANNEL = 4005
    INVALID_PERMISSIONS = 4006
    INVALID_CLIENT_ID = 4007
    INVALID_ORIGIN = 4008
    INVALID_TOKEN = 4009
    INVALID_USER = 4010
    INVALID_INVITE = 4011
    INVALID_ACTIVITY_JOIN_REQUEST = 4012
    INVALID_LOBBY = 4013
    INVALID_LOBBY_SECRET = 4014
    INVALID_ENTITLEMENT = 4015
    INVALID_GIFT_CODE = 4016
    OAUTH2_ERROR = 5000
    SELECT_CHANNEL_TIMED_OUT = 5001
    GET_GUILD_TIMED_OUT = 5002
    SELECT_VOICE_FORCE_REQUIRED = 5003
    CAPTURE_SHORTCUT_ALREADY_LISTENING = 5004
    INVALID_ACTIVITY_SECRET = 5005
    NO_ELIGIBLE_ACTIVITY = 5006
    LOBBY_FULL = 5007
    PURCHASE_CANCELED = 5008
    PURCHASE_ERROR = 5009
    UNAUTHORIZED_FOR_ACHIEVEMENT = 5010
    RATE_LIMITED = 5011


class CloseCode(IntEnum):
    """Close codes carried by Close frames."""

    NORMAL = 1000
    UNSUPPORTED = 1003
    ABNORMAL = 1006
    INVALID_CLIENT_ID = 4000
    INVALID_ORIGIN = 4001
    RATE_LIMITED = 4002
    TOKEN_REVOKED = 4003
    INVALID_VERSION = 4004
    INVALID_ENCODING = 4005


class ActivityType(IntEnum):
    """Activity types for Rich Presence."""

    PLAYING = 0
    STREAMING = 1
    LISTENING = 2
    WATCHING = 3
    COMPETING = 5


class LobbyType(IntEnum):
    """Lobby visibility."""

    PRIVATE = 1
    PUBLIC = 2


class Scope(str, Enum):
    """OAuth2 scopes."""

    IDENTIFY = "identify"
    EMAIL = "email"
    CONNECTIONS = "connections"
    GUILDS = "guilds"
    GUILDS_JOIN = "guilds.join"
    GUILDS_MEMBERS_READ = "guilds.members.read"
    BOT = "bot"
    RPC = "rpc"
    RPC_NOTIFICATIONS_READ = "rpc.notifications.read"
    RPC_VOICE_READ = "rpc.voice.read"
    RPC_VOICE_WRITE = "rpc.voice.write"
    RPC_ACTIVITIES_WRITE = "rpc.activities.write"
    MESSAGES_READ = "messages.read"
    APPLICATIONS_COMMANDS = "applications.commands"
    ACTIVITIES_READ = "activities.read"
    ACTIVITIES_WRITE = "activities.write"
    RELATIONSHIPS_READ = "relationships.read"


@dataclass(frozen=True)
class Message:
    """
    A decoded unit from the wire.

    The payload is whatever structured value the peer sent, usually a dict.
    """

    opcode: int
    payload: Any = None


@dataclass
class RPCFrame:
    """View over the payload of a Frame message."""

    cmd: str | None = None
    evt: str | None = None
    nonce: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> RPCFrame:
        """Build a frame from a decoded payload, tolerating missing keys."""
        if not isinstance(payload, dict):
            return cls()
        data = payload.get("data")
        nonce = payload.get("nonce")
        return cls(
            cmd=payload.get("cmd"),
            evt=payload.get("evt"),
            nonce=nonce if isinstance(nonce, str) else None,
            data=data if isinstance(data, dict) else {},
        )

    @property
    def is_error(self) -> bool:
        """Check if the frame signals an error."""
        return self.evt == RPCEvent.ERROR.value

    @property
    def error_message(self) -> str | None:
        return self.data.get("message")

    @property
    def error_code(self) -> int:
        code = self.data.get("code", 0)
        return code if isinstance(code, int) else 0


def new_nonce() -> str:
    """Generate a fresh correlation token (128-bit random UUID)."""
    return str(uuid.uuid4())


def handshake_payload(client_id: str) -> dict[str, Any]:
    """Create the payload of a Handshake message."""
    return {"v": IPC_VERSION, "client_id": client_id}


def request_payload(
    command: Command | str,
    args: dict[str, Any] | None,
    event: RPCEvent | str | None,
    nonce: str,
) -> dict[str, Any]:
    """
    Create the payload of a request Frame.

    ``args`` and ``evt`` are omitted from the payload when not given.
    """
    cmd = command.value if isinstance(command, Command) else command
    payload: dict[str, Any] = {"cmd": cmd}
    if args is not None:
        payload["args"] = args
    if event is not None:
        payload["evt"] = event.value if isinstance(event, RPCEvent) else event
    payload["nonce"] = nonce
    return payload
