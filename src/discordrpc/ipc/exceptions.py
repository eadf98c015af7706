"""
RPC Exception Hierarchy.

Defines all exceptions raised by the IPC transport and the RPC session
built on top of it.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Local classification of client-side failures."""

    # Connection errors
    CONNECTION_FAILED = "CONNECTION_FAILED"
    CONNECTION_LOST = "CONNECTION_LOST"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    NO_PEER_FOUND = "NO_PEER_FOUND"
    NOT_CONNECTED = "NOT_CONNECTED"

    # Session errors
    INVALID_STATE = "INVALID_STATE"
    TIMEOUT = "TIMEOUT"

    # Peer errors
    COMMAND_FAILED = "COMMAND_FAILED"
    TOKEN_EXCHANGE_FAILED = "TOKEN_EXCHANGE_FAILED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class RPCError(Exception):
    """Base exception for all RPC-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class RPCConnectionError(RPCError):
    """Raised when the IPC link cannot be established or is lost."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONNECTION_FAILED,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code, details)


class RPCTimeoutError(RPCError):
    """Raised when a handshake or request exceeds its deadline."""

    def __init__(
        self,
        message: str = "Operation timed out",
        code: ErrorCode = ErrorCode.TIMEOUT,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code, details)


class RPCCommandError(RPCError):
    """Raised when the peer explicitly rejects a request."""

    def __init__(
        self,
        message: str,
        rpc_code: int = 0,
        code: ErrorCode = ErrorCode.COMMAND_FAILED,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code, {"rpc_code": rpc_code, **(details or {})})
        self.rpc_code = rpc_code


class RPCStateError(RPCError):
    """Raised when an operation is invalid for the current session state."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_STATE,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, code, details)
