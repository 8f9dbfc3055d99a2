"""
Custom exceptions for the key-value store.

File-system failures are not wrapped: they surface as the OSError raised
by the failing call.
"""


class LogKVError(Exception):
    """Base class for store errors."""


class MalformedEntryError(LogKVError):
    """
    Raised when a payload cannot be decoded.

    Either the tag byte is unknown or a declared field length runs past
    the end of the payload.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"malformed log entry: {reason}")


class CorruptLogError(LogKVError):
    """
    Raised when replay meets a checksum-valid payload that does not decode.

    Unlike a torn tail this cannot come from a crash mid-append, so the
    store refuses to open.
    """

    def __init__(self, path: str, entry_offset: int, reason: str):
        """
        Initialize corruption error.

        Args:
            path: Log file being replayed.
            entry_offset: File offset of the entry's frame header.
            reason: Why the payload failed to decode.
        """
        self.path = path
        self.entry_offset = entry_offset
        self.reason = reason
        super().__init__(
            f"corrupt log {path} at offset {entry_offset}: {reason}"
        )


class CompactionFatalError(LogKVError):
    """
    Raised when compaction fails after the compacted log replaced the live one.

    The log on disk is complete and compacted, but the store no longer
    holds a writable handle and refuses further writes.
    """

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        super().__init__(
            f"compaction of {path} failed after swap, store is read-only: {cause}"
        )


class StoreClosedError(LogKVError):
    """Raised when writing to a store that is closed or has lost its log handle."""
