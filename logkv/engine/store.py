"""
Store - Main key-value store API.
"""

import logging
import os
from pathlib import Path
from typing import BinaryIO

from logkv.engine.compactor import LogCompactor
from logkv.engine.initializer import StoreInitializer
from logkv.models.entry import encode_delete, encode_set
from logkv.models.exceptions import CompactionFatalError, StoreClosedError
from logkv.models.log import append_entry

logger = logging.getLogger(__name__)

BytesLike = bytes | bytearray | memoryview


def _as_bytes(data: BytesLike, name: str) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like, got {type(data).__name__}")
    return bytes(data)


class Store:
    """
    Log-structured key-value store.

    Provides:
    - get(key): Look up a key in memory
    - set(key, value): Durably log an assignment, then apply it
    - delete(key): Durably log a tombstone, then apply it
    - compact(): Rewrite the log down to the live key set
    - close(): Release the log file

    Architecture:
    - Every mutation is appended to the log and synced before the
      in-memory table changes
    - On open the table is rebuilt by replaying the whole log
    - Single writer, no internal locking: callers sharing a Store across
      threads must serialize all calls themselves
    """

    def __init__(self, path: str, keep_discarded_tail: bool = True) -> None:
        """
        Open or create a store.

        Args:
            path: Path of the log file. Its parent directory is created
                if missing.
            keep_discarded_tail: Before a torn tail is truncated, copy its
                bytes to <path>.discarded-<offset>.

        Raises:
            ValueError: If path is empty.
            PermissionError: If the log's directory is not writable.
            OSError: If the log cannot be opened or read.
            CorruptLogError: If replay meets an undecodable entry.
        """
        if not path or not str(path).strip():
            raise ValueError("path cannot be empty")

        path = os.path.abspath(path)
        parent = os.path.dirname(path)
        Path(parent).mkdir(parents=True, exist_ok=True)
        if not os.access(parent, os.W_OK):
            raise PermissionError(f"log directory not writable: {parent}")

        self._path = path
        self._closed = False

        self._file: BinaryIO | None
        self._table: dict[bytes, bytes]

        initializer = StoreInitializer(path, keep_discarded_tail=keep_discarded_tail)
        self._file, result = initializer.recover()
        self._table = result.table

        # (start, end) of bytes cut from the log on open, None if intact
        self.discarded_tail: tuple[int, int] | None = None
        self.discarded_tail_path = initializer.discarded_path
        if result.torn:
            self.discarded_tail = (result.valid_end, result.file_size)
        logger.info(
            f"Opened {path}: {result.entries} entries replayed, {len(self._table)} keys"
        )

    @classmethod
    def open(cls, path: str, keep_discarded_tail: bool = True) -> "Store":
        """Open or create the store backed by the log at path."""
        return cls(path, keep_discarded_tail=keep_discarded_tail)

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def _writable_file(self) -> BinaryIO:
        if self._closed:
            raise StoreClosedError(f"store {self._path} is closed")
        if self._file is None:
            raise StoreClosedError(
                f"store {self._path} has no log handle after a failed compaction"
            )
        return self._file

    def get(self, key: BytesLike) -> bytes | None:
        """
        Retrieve a value by key.

        Args:
            key: The key to look up.

        Returns:
            The value if present, None otherwise.
        """
        if self._closed:
            raise StoreClosedError(f"store {self._path} is closed")
        return self._table.get(_as_bytes(key, "key"))

    def set(self, key: BytesLike, value: BytesLike) -> None:
        """
        Insert or update a key.

        The table is only updated once the entry is durable; if the append
        fails the error propagates and the table is unchanged.
        """
        key = _as_bytes(key, "key")
        value = _as_bytes(value, "value")
        append_entry(self._writable_file(), encode_set(key, value))
        self._table[key] = value

    def delete(self, key: BytesLike) -> None:
        """
        Delete a key by appending a tombstone.

        Deleting an absent key still logs the tombstone and succeeds.
        """
        key = _as_bytes(key, "key")
        append_entry(self._writable_file(), encode_delete(key))
        self._table.pop(key, None)

    def compact(self) -> None:
        """
        Rewrite the log to hold exactly one Set entry per live key.

        Raises:
            OSError: If compaction failed before the live log was replaced.
                The original log and the table are untouched and the store
                stays writable.
            CompactionFatalError: If the live log was replaced but the store
                could not reopen it (or, while rolling back, could not reopen
                the original). The log on disk is intact; writes now raise
                StoreClosedError.
        """
        live = self._writable_file()
        before = os.path.getsize(self._path)
        compactor = LogCompactor(self._path)

        size = compactor.prepare(self._table)

        try:
            self._file = None
            live.close()
            compactor.swap()
        except Exception as e:
            logger.warning(f"Compaction of {self._path} rolled back: {e}")
            compactor.discard()
            self._reopen_after_rollback()
            raise

        try:
            self._file = compactor.reopen()
        except Exception as e:
            logger.critical(f"Compaction of {self._path} failed after swap: {e}")
            raise CompactionFatalError(self._path, e) from e

        logger.info(
            f"Compacted {self._path}: {len(self._table)} keys, {before} -> {size} bytes"
        )

    def _reopen_after_rollback(self) -> None:
        """Reopen the untouched live log after a failed swap."""
        try:
            self._file = open(self._path, "ab+")
            self._file.seek(0, os.SEEK_END)
        except Exception as e:
            logger.critical(f"Cannot reopen {self._path} after rollback: {e}")
            raise CompactionFatalError(self._path, e) from e

    def close(self) -> None:
        """Close the log file. Calling close again is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._table = {}
        if self._file is not None:
            file, self._file = self._file, None
            file.close()

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: BytesLike) -> bool:
        return _as_bytes(key, "key") in self._table

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_store(path: str) -> Store:
    """Open or create the store backed by the log at path."""
    return Store.open(path)
