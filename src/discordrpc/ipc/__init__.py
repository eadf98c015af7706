"""
Discord RPC IPC - Inter-Process Communication.

Provides the client side of the Discord desktop RPC protocol over a named
pipe (Windows) or Unix domain socket (elsewhere).
"""

from discordrpc.ipc.client import (
    ClientEvent,
    ConnectionState,
    RPCClient,
    Subscription,
    create_client,
)
from discordrpc.ipc.codec import FrameDecoder, decode, encode
from discordrpc.ipc.correlator import PendingRequest, RequestCorrelator
from discordrpc.ipc.discovery import SocketConnector, candidate_paths
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
    HEADER_SIZE,
    HEARTBEAT_INTERVAL,
    IPC_VERSION,
    MAX_PIPE_INDEX,
    ActivityType,
    CloseCode,
    Command,
    LobbyType,
    Message,
    OpCode,
    RPCErrorCode,
    RPCEvent,
    RPCFrame,
    Scope,
)
from discordrpc.ipc.transport import IPCTransport

__all__ = [
    # Protocol
    "HEADER_SIZE",
    "HEARTBEAT_INTERVAL",
    "IPC_VERSION",
    "MAX_PIPE_INDEX",
    "ActivityType",
    "CloseCode",
    "Command",
    "LobbyType",
    "Message",
    "OpCode",
    "RPCErrorCode",
    "RPCEvent",
    "RPCFrame",
    "Scope",
    # Codec
    "FrameDecoder",
    "decode",
    "encode",
    # Transport
    "IPCTransport",
    "SocketConnector",
    "candidate_paths",
    # Session
    "ClientEvent",
    "ConnectionState",
    "HeartbeatScheduler",
    "PendingRequest",
    "RequestCorrelator",
    "RPCClient",
    "Subscription",
    "create_client",
    # Exceptions
    "ErrorCode",
    "RPCError",
    "RPCCommandError",
    "RPCConnectionError",
    "RPCStateError",
    "RPCTimeoutError",
]
