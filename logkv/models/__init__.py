"""
Data models for the log: record codec, log reader/writer and exceptions.
"""

from logkv.models.entry import DeleteRecord, RecordType, SetRecord
from logkv.models.log import LogReader, ReadStop

__all__ = [
    "RecordType",
    "SetRecord",
    "DeleteRecord",
    "LogReader",
    "ReadStop",
]
