"""
Tests for the entry codec: records, payload layout and framing.
"""

import zlib

import pytest

from logkv.models.entry import (
    HEADER_SIZE,
    DeleteRecord,
    RecordType,
    SetRecord,
    checksum,
    decode_payload,
    encode_delete,
    encode_set,
    frame,
    parse_header,
)
from logkv.models.exceptions import MalformedEntryError

ALL_BYTES = bytes(range(256))


class TestSetRecord:
    """Tests for SetRecord encoding."""

    def test_layout(self):
        """Test the exact byte layout of a Set payload."""
        payload = encode_set(b"ab", b"xyz")
        assert payload == (
            b"\x01"
            + b"\x00\x00\x00\x02" + b"ab"
            + b"\x00\x00\x00\x03" + b"xyz"
        )

    def test_bytes_matches_encode(self):
        """Test that bytes(record) and encode_set agree."""
        assert bytes(SetRecord(key=b"k", value=b"v")) == encode_set(b"k", b"v")

    @pytest.mark.parametrize(
        "key,value",
        [
            (b"key", b"value"),
            (b"", b""),
            (b"", b"value"),
            (b"key", b""),
            (ALL_BYTES, ALL_BYTES[::-1]),
        ],
    )
    def test_roundtrip(self, key, value):
        """Test encode then decode reproduces the record."""
        record = decode_payload(encode_set(key, value))
        assert record == SetRecord(key=key, value=value)

    def test_large_value(self):
        """Test a value larger than typical buffer sizes."""
        value = ALL_BYTES * 1024
        record = decode_payload(encode_set(b"big", value))
        assert record.value == value


class TestDeleteRecord:
    """Tests for DeleteRecord encoding."""

    def test_layout(self):
        """Test the exact byte layout of a Delete payload."""
        assert encode_delete(b"ab") == b"\x02\x00\x00\x00\x02ab"

    @pytest.mark.parametrize("key", [b"key", b"", ALL_BYTES])
    def test_roundtrip(self, key):
        """Test encode then decode reproduces the tombstone."""
        record = decode_payload(encode_delete(key))
        assert record == DeleteRecord(key=key)
        assert isinstance(record, DeleteRecord)

    def test_tag_values(self):
        """Test the tag bytes are fixed."""
        assert RecordType.SET == 1
        assert RecordType.DELETE == 2


class TestMalformedPayloads:
    """Tests for payloads that must not decode."""

    @pytest.mark.parametrize("tag", [0, 3, 0xFF])
    def test_unknown_tag(self, tag):
        """Test that an unknown tag byte is rejected."""
        with pytest.raises(MalformedEntryError) as exc_info:
            decode_payload(bytes([tag]) + b"\x00\x00\x00\x00")
        assert str(tag) in exc_info.value.reason

    def test_set_missing_key_length(self):
        with pytest.raises(MalformedEntryError):
            decode_payload(b"\x01\x00\x00")

    def test_set_key_past_end(self):
        """Test a key length larger than the payload."""
        with pytest.raises(MalformedEntryError):
            decode_payload(b"\x01\x00\x00\x00\x10abc")

    def test_set_missing_value_length(self):
        with pytest.raises(MalformedEntryError):
            decode_payload(b"\x01\x00\x00\x00\x01k")

    def test_set_value_past_end(self):
        """Test a value length larger than the remaining payload."""
        payload = encode_set(b"k", b"value")
        with pytest.raises(MalformedEntryError):
            decode_payload(payload[:-1])

    def test_delete_key_past_end(self):
        payload = encode_delete(b"key")
        with pytest.raises(MalformedEntryError):
            decode_payload(payload[:-1])


class TestFrame:
    """Tests for the length + checksum header."""

    def test_frame_layout(self):
        """Test header is length then CRC32, both big-endian."""
        payload = encode_set(b"k", b"v")
        framed = frame(payload)

        assert len(framed) == HEADER_SIZE + len(payload)
        assert framed[0:4] == len(payload).to_bytes(4, "big")
        assert framed[4:8] == (zlib.crc32(payload) & 0xffffffff).to_bytes(4, "big")
        assert framed[8:] == payload

    def test_parse_header(self):
        payload = encode_delete(b"gone")
        length, expected = parse_header(frame(payload)[:HEADER_SIZE])
        assert length == len(payload)
        assert expected == checksum(payload)

    def test_checksum_is_unsigned(self):
        """Test checksum stays within uint32 for any payload."""
        for payload in (b"", ALL_BYTES, b"\xff" * 100):
            assert 0 <= checksum(payload) <= 0xffffffff

    def test_known_crc(self):
        """Test against the standard CRC32 check value."""
        assert checksum(b"123456789") == 0xCBF43926
