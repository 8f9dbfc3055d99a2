"""
Log entry codec: record payloads and the frame that wraps them on disk.

Frame:   [length:4][crc32:4][payload]
Set:     [0x01][key_len:4][key][value_len:4][value]
Delete:  [0x02][key_len:4][key]

All integers are big-endian and unsigned.
"""

import zlib
from dataclasses import dataclass
from enum import IntEnum

from logkv.models.exceptions import MalformedEntryError

# Frame header: length + checksum
HEADER_SIZE = 8


class RecordType(IntEnum):
    """Tag byte stored at the start of every payload."""

    SET = 1
    DELETE = 2


@dataclass(frozen=True)
class SetRecord:
    """
    A key assignment.

    Attributes:
        key: The key being written.
        value: The value being written.
    """

    key: bytes
    value: bytes

    def __bytes__(self) -> bytes:
        return (
            RecordType.SET.to_bytes(1, "big")
            + len(self.key).to_bytes(4, "big")
            + self.key
            + len(self.value).to_bytes(4, "big")
            + self.value
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SetRecord":
        """Deserialize from a payload whose tag byte is SET."""
        offset = 1
        key, offset = _read_field(data, offset, "key")
        value, offset = _read_field(data, offset, "value")
        return cls(key=key, value=value)


@dataclass(frozen=True)
class DeleteRecord:
    """
    A tombstone marking a key as deleted.

    Attributes:
        key: The key being deleted.
    """

    key: bytes

    def __bytes__(self) -> bytes:
        return (
            RecordType.DELETE.to_bytes(1, "big")
            + len(self.key).to_bytes(4, "big")
            + self.key
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DeleteRecord":
        """Deserialize from a payload whose tag byte is DELETE."""
        key, _ = _read_field(data, 1, "key")
        return cls(key=key)


Record = SetRecord | DeleteRecord


def _read_field(data: bytes, offset: int, name: str) -> tuple[bytes, int]:
    """Read a length-prefixed field, returning it and the offset past it."""
    if offset + 4 > len(data):
        raise MalformedEntryError(f"payload too short for {name} length")
    length = int.from_bytes(data[offset : offset + 4], "big")
    offset += 4

    if offset + length > len(data):
        raise MalformedEntryError(
            f"{name} length {length} exceeds payload bounds ({len(data) - offset} bytes left)"
        )
    return bytes(data[offset : offset + length]), offset + length


def encode_set(key: bytes, value: bytes) -> bytes:
    return bytes(SetRecord(key=key, value=value))


def encode_delete(key: bytes) -> bytes:
    return bytes(DeleteRecord(key=key))


def decode_payload(payload: bytes) -> Record:
    """
    Decode a payload into the record it holds.

    Args:
        payload: Payload bytes, tag byte first.

    Returns:
        A SetRecord or a DeleteRecord.

    Raises:
        MalformedEntryError: If the tag is unknown or a declared field
            length runs past the end of the payload.
    """
    if not payload:
        raise MalformedEntryError("empty payload")

    tag = payload[0]
    if tag == RecordType.SET:
        return SetRecord.from_bytes(payload)
    if tag == RecordType.DELETE:
        return DeleteRecord.from_bytes(payload)
    raise MalformedEntryError(f"unknown record type {tag}")


def checksum(payload: bytes) -> int:
    """CRC32 (IEEE) of a payload as an unsigned 32-bit integer."""
    return zlib.crc32(payload) & 0xffffffff


def frame(payload: bytes) -> bytes:
    """Prepend the length and checksum header to a payload."""
    return (
        len(payload).to_bytes(4, "big")
        + checksum(payload).to_bytes(4, "big")
        + payload
    )


def parse_header(header: bytes) -> tuple[int, int]:
    """Split an 8-byte frame header into (length, checksum)."""
    length = int.from_bytes(header[0:4], "big")
    expected = int.from_bytes(header[4:8], "big")
    return length, expected
