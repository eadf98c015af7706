"""
discordrpc - Discord desktop RPC client.

Talks to a running Discord desktop app over its local IPC socket to set
Rich Presence, run OAuth2 authorization and receive RPC events.
"""

__version__ = "0.1.0"

from discordrpc.ipc import (
    ClientEvent,
    ConnectionState,
    RPCClient,
    RPCCommandError,
    RPCConnectionError,
    RPCError,
    RPCStateError,
    RPCTimeoutError,
    create_client,
)
from discordrpc.models import Activity, ReadyData
from discordrpc.presence import PresenceBuilder
from discordrpc.utils.cdn import avatar_url

__all__ = [
    "__version__",
    "Activity",
    "ClientEvent",
    "ConnectionState",
    "PresenceBuilder",
    "ReadyData",
    "avatar_url",
    "RPCClient",
    "RPCCommandError",
    "RPCConnectionError",
    "RPCError",
    "RPCStateError",
    "RPCTimeoutError",
    "create_client",
]
