"""
Store engine: recovery, compaction and the public Store API.
"""

from logkv.engine.store import Store, open_store

__all__ = ["Store", "open_store"]
