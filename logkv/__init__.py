"""
Log-structured key-value store.

An in-memory table backed by an append-only, checksummed log file:
- set(key, value) - durable append + fsync, then update memory
- get(key) - in-memory lookup
- delete(key) - tombstone append
- compact() - atomic rewrite of the log down to the live key set

The table is rebuilt by replaying the whole log on open.
"""

from logkv.engine.store import Store, open_store
from logkv.models.exceptions import (
    CompactionFatalError,
    CorruptLogError,
    LogKVError,
    MalformedEntryError,
    StoreClosedError,
)

__all__ = [
    "Store",
    "open_store",
    "LogKVError",
    "MalformedEntryError",
    "CorruptLogError",
    "CompactionFatalError",
    "StoreClosedError",
]
