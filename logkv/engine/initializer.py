"""
StoreInitializer - Handle startup and crash recovery.
"""

import logging
import os
from typing import BinaryIO

from logkv.engine.compactor import artifact_paths
from logkv.engine.recoverer import ReplayResult, TableRecoverer
from logkv.models.log import sync_directory, sync_file

logger = logging.getLogger(__name__)

DISCARDED_SUFFIX = ".discarded"


def discarded_tail_path(path: str, offset: int) -> str:
    """Name of the file holding bytes cut from a log at the given offset."""
    return f"{path}{DISCARDED_SUFFIX}-{offset}"


class StoreInitializer:
    """
    Handles store initialization and crash recovery.

    Responsibilities:
    - Remove artifacts of a compaction interrupted before its swap
    - Open or create the log file
    - Replay the log into a table
    - Cut a torn tail so new appends follow the last valid entry, saving
      the cut bytes next to the log first
    """

    def __init__(self, path: str, keep_discarded_tail: bool = True) -> None:
        """
        Initialize the store initializer.

        Args:
            path: Absolute path of the log file.
            keep_discarded_tail: Copy bytes cut from a torn tail to
                <path>.discarded-<offset> before truncating.
        """
        self.path = path
        self.keep_discarded_tail = keep_discarded_tail
        self.discarded_path: str | None = None
        self._recoverer = TableRecoverer()

    def _cleanup_compaction_artifacts(self) -> None:
        """
        Remove temp/staging files from an interrupted compaction.

        The live log is only replaced by the final rename, so until then
        it is complete and these files are redundant.
        """
        for artifact in artifact_paths(self.path):
            if os.path.exists(artifact):
                logger.warning(f"Removing leftover compaction file {artifact}")
                os.remove(artifact)

    def _save_tail(self, file: BinaryIO, result: ReplayResult) -> None:
        """Copy the bytes past the last valid entry to a side file."""
        target = discarded_tail_path(self.path, result.valid_end)
        file.seek(result.valid_end)
        data = file.read()

        with open(target, "wb") as out:
            out.write(data)
            sync_file(out)
        sync_directory(os.path.dirname(self.path))
        self.discarded_path = target

    def recover(self) -> tuple[BinaryIO, ReplayResult]:
        """
        Open the log and rebuild state from it.

        Returns:
            Tuple of:
            - The log file, opened for appends and positioned at its end
            - The replay result holding the recovered table

        Raises:
            OSError: If the log cannot be opened, read or truncated.
            CorruptLogError: If a checksum-valid entry fails to decode.
        """
        self._cleanup_compaction_artifacts()

        file = open(self.path, "ab+")
        try:
            file.seek(0)
            result = self._recoverer.recover(file, self.path)

            if result.torn:
                if self.keep_discarded_tail:
                    self._save_tail(file, result)
                logger.warning(
                    f"Truncating {self.path} to {result.valid_end} bytes after torn tail: "
                    f"discarding {result.discarded_bytes} bytes "
                    f"[{result.valid_end}, {result.file_size})"
                    + (f", saved to {self.discarded_path}" if self.discarded_path else "")
                )
                file.truncate(result.valid_end)
                sync_file(file)

            file.seek(0, os.SEEK_END)
        except Exception:
            file.close()
            raise

        return file, result
