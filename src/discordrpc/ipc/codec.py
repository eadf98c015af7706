"""
IPC Framing Codec.

Encodes and decodes the Discord IPC wire format:

    [opcode: u32 LE][length: u32 LE][length bytes of UTF-8 JSON]

Decoding works on an accumulation buffer so that messages split across
reads, or batched into one read, reassemble the same way.
"""

from __future__ import annotations

import json
import logging
import struct
from typing import Any

from discordrpc.ipc.protocol import HEADER_SIZE, Message

logger = logging.getLogger(__name__)

# Header format: two unsigned 4-byte integers, little-endian
HEADER_FORMAT = "<II"


def encode(opcode: int, payload: Any) -> bytes:
    """
    Encode a message into its wire representation.

    Raises:
        TypeError: If payload is not JSON serializable
    """
    data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return struct.pack(HEADER_FORMAT, int(opcode), len(data)) + data


def decode(buffer: bytearray) -> list[Message]:
    """
    Extract every complete message from ``buffer``.

    Consumed bytes are removed from ``buffer`` in place; a trailing partial
    message is left for the next call. A message whose payload is not valid
    UTF-8 JSON is dropped without affecting the messages after it.
    """
    messages: list[Message] = []
    offset = 0

    while len(buffer) - offset >= HEADER_SIZE:
        opcode, length = struct.unpack_from(HEADER_FORMAT, buffer, offset)
        end = offset + HEADER_SIZE + length
        if len(buffer) < end:
            break  # Partial message

        raw = bytes(buffer[offset + HEADER_SIZE : end])
        offset = end

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug(f"Dropping malformed message (opcode={opcode}, {length} bytes): {e}")
            continue

        messages.append(Message(opcode=opcode, payload=payload))

    if offset:
        del buffer[:offset]
    return messages


class FrameDecoder:
    """
    Stateful decoder owning an accumulation buffer.

    Example:
        decoder = FrameDecoder()
        for chunk in chunks:
            for message in decoder.feed(chunk):
                handle(message)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet forming a complete message."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[Message]:
        """Append ``chunk`` and return the messages it completes."""
        self._buffer.extend(chunk)
        return decode(self._buffer)

    def reset(self) -> None:
        """Discard buffered bytes."""
        self._buffer.clear()
