"""
TableRecoverer - Rebuild the in-memory table by replaying a log.
"""

from dataclasses import dataclass
from typing import BinaryIO

from logkv.models.entry import DeleteRecord, Record, SetRecord, decode_payload
from logkv.models.exceptions import CorruptLogError, MalformedEntryError
from logkv.models.log import LogReader


@dataclass
class ReplayResult:
    """
    Outcome of replaying a log.

    Attributes:
        table: Key -> value state after applying every valid entry.
        entries: Number of entries applied.
        valid_end: Offset just past the last valid entry.
        file_size: Size of the log when it was replayed.
        torn: True if trailing bytes after valid_end were ignored.
    """

    table: dict[bytes, bytes]
    entries: int
    valid_end: int
    file_size: int
    torn: bool

    @property
    def discarded_bytes(self) -> int:
        return self.file_size - self.valid_end if self.torn else 0


def apply_record(table: dict[bytes, bytes], record: Record) -> None:
    """Apply one record to a table; later records supersede earlier ones."""
    if isinstance(record, SetRecord):
        table[record.key] = record.value
    elif isinstance(record, DeleteRecord):
        table.pop(record.key, None)


class TableRecoverer:
    """
    Recovers a key -> value table from a log.

    The table is derived state: replaying the same log always yields the
    same table, so it is never persisted on its own.
    """

    def recover(self, file: BinaryIO, path: str) -> ReplayResult:
        """
        Replay entries from the file's current position.

        Args:
            file: Log file opened for binary reading, positioned at 0.
            path: Log path, for error reporting.

        Returns:
            The replayed table and where the valid part of the log ends.

        Raises:
            CorruptLogError: If a checksum-valid payload fails to decode.
        """
        table: dict[bytes, bytes] = {}
        reader = LogReader(file)
        entries = 0

        for payload in reader:
            # Zero-filled space from a crash frames as a valid empty entry
            if not payload:
                continue
            try:
                record = decode_payload(payload)
            except MalformedEntryError as e:
                raise CorruptLogError(path, reader.entry_offset, e.reason) from e
            apply_record(table, record)
            entries += 1

        return ReplayResult(
            table=table,
            entries=entries,
            valid_end=reader.valid_end,
            file_size=reader.size,
            torn=reader.torn,
        )


def replay_log(path: str) -> dict[bytes, bytes]:
    """Read a log file into a fresh table without opening a store."""
    with open(path, "rb") as f:
        return TableRecoverer().recover(f, path).table
