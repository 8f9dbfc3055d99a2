"""
Log writer and reader for the append-only log file.
"""

import logging
import os
from collections.abc import Iterator
from enum import Enum
from typing import BinaryIO, NoReturn

from logkv.models.entry import HEADER_SIZE, checksum, frame, parse_header

logger = logging.getLogger(__name__)


def sync_file(file: BinaryIO) -> None:
    """Push a file's data from Python user space -> OS kernel -> Disk."""
    file.flush()
    # Use fdatasync if available (Linux), fallback to fsync (macOS/Windows)
    _sync_data = getattr(os, "fdatasync", os.fsync)
    _sync_data(file.fileno())


def sync_directory(path: str) -> None:
    """
    Make renames and creations inside a directory durable.

    Args:
        path: The directory to sync.
    """
    if os.name == "nt":
        # Directories cannot be opened for fsync on Windows
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def append_entry(file: BinaryIO, payload: bytes, sync: bool = True) -> int:
    """
    Append a framed payload to a log file.

    When this returns with sync enabled the entry is on stable storage.
    If it raises, the entry may or may not have reached the disk and the
    caller must not act as if it had.

    Args:
        file: Log file opened for binary writing.
        payload: Encoded record.
        sync: Force the write to disk before returning.

    Returns:
        Number of bytes written (header plus payload).
    """
    data = frame(payload)
    file.write(data)
    if sync:
        sync_file(file)
    else:
        file.flush()
    return len(data)


class ReadStop(Enum):
    """Why a LogReader stopped producing payloads."""

    END_OF_FILE = "end of file"
    SHORT_HEADER = "short header"
    SHORT_PAYLOAD = "short payload"
    CHECKSUM_MISMATCH = "checksum mismatch"


class LogReader(Iterator[bytes]):
    """
    Iterator over the checksum-valid payloads of a log file.

    Reading starts at the file's current position and ends quietly at
    end of file or at the first torn or corrupt entry. Only the last
    entry of a log can be partially written, so anything from that point
    on is treated as a crash artifact rather than an error.

    Attributes:
        entry_offset: Offset of the frame of the payload last returned.
        valid_end: Offset just past the last valid entry.
        stop: Why iteration ended, None while still reading.
    """

    def __init__(self, file: BinaryIO) -> None:
        self._file = file
        self.entry_offset = file.tell()
        self.valid_end = self.entry_offset
        self.stop: ReadStop | None = None

        # Bound payload reads by what is actually on disk
        self._size = file.seek(0, os.SEEK_END)
        file.seek(self.valid_end)

    @property
    def size(self) -> int:
        """Size of the file when reading started."""
        return self._size

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self.stop is not None:
            raise StopIteration

        header = self._file.read(HEADER_SIZE)
        if not header:
            return self._finish(ReadStop.END_OF_FILE)
        if len(header) < HEADER_SIZE:
            return self._finish(ReadStop.SHORT_HEADER)

        length, expected = parse_header(header)
        if self.valid_end + HEADER_SIZE + length > self._size:
            return self._finish(ReadStop.SHORT_PAYLOAD)

        payload = self._file.read(length)
        if len(payload) < length:
            return self._finish(ReadStop.SHORT_PAYLOAD)

        if checksum(payload) != expected:
            return self._finish(ReadStop.CHECKSUM_MISMATCH)

        self.entry_offset = self.valid_end
        self.valid_end += HEADER_SIZE + length
        return payload

    def _finish(self, reason: ReadStop) -> NoReturn:
        self.stop = reason
        if reason is not ReadStop.END_OF_FILE:
            logger.warning(
                f"Log replay stopped at offset {self.valid_end}: {reason.value}, "
                f"{self._size - self.valid_end} trailing bytes ignored"
            )
        raise StopIteration

    @property
    def torn(self) -> bool:
        """True if reading stopped before the end of the file."""
        return self.stop is not None and self.stop is not ReadStop.END_OF_FILE


def read_payloads(file: BinaryIO) -> Iterator[bytes]:
    """Yield every valid payload from the file's current position onward."""
    yield from LogReader(file)
