"""
Unit tests for the RPC message protocol.

Tests:
- Enum values
- RPCFrame parsing
- Payload builders
"""

import uuid

from discordrpc.ipc import (
    IPC_VERSION,
    ActivityType,
    Command,
    OpCode,
    RPCErrorCode,
    RPCEvent,
    RPCFrame,
    Scope,
)
from discordrpc.ipc.protocol import handshake_payload, new_nonce, request_payload


class TestEnums:
    """Tests for protocol enums."""

    def test_opcode_values(self) -> None:
        """Opcodes should match the wire values."""
        assert [int(op) for op in OpCode] == [0, 1, 2, 3, 4]
        assert OpCode.HANDSHAKE == 0
        assert OpCode.PONG == 4

    def test_command_values(self) -> None:
        """Command enum should have expected values."""
        assert Command.SET_ACTIVITY.value == "SET_ACTIVITY"
        assert Command.DISPATCH.value == "DISPATCH"
        assert Command.GET_RELATIONSHIPS.value == "GET_RELATIONSHIPS"

    def test_event_values(self) -> None:
        """RPCEvent enum should have expected values."""
        assert RPCEvent.READY.value == "READY"
        assert RPCEvent.ERROR.value == "ERROR"
        assert RPCEvent.ACTIVITY_JOIN.value == "ACTIVITY_JOIN"

    def test_rpc_error_code_values(self) -> None:
        """Numeric error codes should match the desktop app's."""
        assert RPCErrorCode.INVALID_CLIENT_ID == 4007
        assert RPCErrorCode.RATE_LIMITED == 5011

    def test_activity_and_scope_values(self) -> None:
        assert ActivityType.COMPETING == 5
        assert Scope.RPC_VOICE_READ.value == "rpc.voice.read"


class TestRPCFrame:
    """Tests for RPCFrame.from_payload."""

    def test_full_payload(self) -> None:
        """All known keys should be read."""
        frame = RPCFrame.from_payload(
            {"cmd": "SET_ACTIVITY", "evt": None, "nonce": "abc", "data": {"pid": 1}}
        )
        assert frame.cmd == "SET_ACTIVITY"
        assert frame.evt is None
        assert frame.nonce == "abc"
        assert frame.data == {"pid": 1}
        assert not frame.is_error

    def test_missing_keys(self) -> None:
        """Missing keys should default to None and an empty data object."""
        frame = RPCFrame.from_payload({})
        assert frame == RPCFrame()
        assert frame.data == {}

    def test_non_dict_payload(self) -> None:
        """Payloads that are not objects should give an empty frame."""
        assert RPCFrame.from_payload([1, 2]) == RPCFrame()
        assert RPCFrame.from_payload(None) == RPCFrame()

    def test_non_dict_data(self) -> None:
        """A non-object data field should be replaced by an empty object."""
        frame = RPCFrame.from_payload({"cmd": "DISPATCH", "data": "text"})
        assert frame.data == {}

    def test_non_string_nonce(self) -> None:
        """A nonce that is not a string should read as None."""
        assert RPCFrame.from_payload({"cmd": "GET_GUILDS", "nonce": ["x"]}).nonce is None
        assert RPCFrame.from_payload({"cmd": "GET_GUILDS", "nonce": {"id": 1}}).nonce is None
        assert RPCFrame.from_payload({"cmd": "GET_GUILDS", "nonce": 7}).nonce is None

    def test_error_frame(self) -> None:
        """Error frames should expose message and numeric code."""
        frame = RPCFrame.from_payload(
            {"evt": "ERROR", "nonce": "n", "data": {"code": 4000, "message": "Invalid payload"}}
        )
        assert frame.is_error
        assert frame.error_message == "Invalid payload"
        assert frame.error_code == 4000

    def test_error_code_defaults_to_zero(self) -> None:
        """Missing or non-integer codes should read as 0."""
        assert RPCFrame.from_payload({"evt": "ERROR"}).error_code == 0
        assert RPCFrame.from_payload({"evt": "ERROR", "data": {"code": "x"}}).error_code == 0


class TestPayloadBuilders:
    """Tests for handshake and request payloads."""

    def test_handshake_payload(self) -> None:
        """Handshake should carry the protocol version and client ID."""
        assert handshake_payload("1234") == {"v": IPC_VERSION, "client_id": "1234"}
        assert IPC_VERSION == 1

    def test_request_payload_with_args(self) -> None:
        payload = request_payload(Command.SET_ACTIVITY, {"pid": 7}, None, "n1")
        assert payload == {"cmd": "SET_ACTIVITY", "args": {"pid": 7}, "nonce": "n1"}

    def test_request_payload_with_event(self) -> None:
        """Subscriptions should carry the event name."""
        payload = request_payload("SUBSCRIBE", {}, RPCEvent.ACTIVITY_JOIN, "n2")
        assert payload == {"cmd": "SUBSCRIBE", "args": {}, "evt": "ACTIVITY_JOIN", "nonce": "n2"}

    def test_request_payload_omits_missing_args(self) -> None:
        """No args key should be sent when args are not given."""
        payload = request_payload(Command.GET_RELATIONSHIPS, None, None, "n3")
        assert "args" not in payload
        assert "evt" not in payload

    def test_new_nonce_is_uuid(self) -> None:
        """Nonces should be distinct UUIDs."""
        first, second = new_nonce(), new_nonce()
        assert first != second
        assert uuid.UUID(first).version == 4
