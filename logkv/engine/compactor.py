"""
LogCompactor - Rewrite the log so it holds only the live key set.

This module snapshots the in-memory table into a new log file and swaps it
in for the live log, using a temp file, a staging rename and directory
syncs so that a crash at any point leaves one complete log in place.
"""

import logging
import os
from typing import BinaryIO

from logkv.models.entry import encode_set
from logkv.models.log import append_entry, sync_directory, sync_file

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".compact.tmp"
STAGING_SUFFIX = ".compact.new"


def artifact_paths(path: str) -> tuple[str, str]:
    """Return the (temp, staging) file names used when compacting a log."""
    return path + TEMP_SUFFIX, path + STAGING_SUFFIX


class LogCompactor:
    """
    Compacts a single log file from a snapshot of its table.

    Protocol:
    1. Create the temp file exclusively (fail if it exists)
    2. Write one Set entry per live key, sync, close
    3. Rename temp -> staging
    4. Sync the directory
    5. (caller closes the live handle) rename staging -> live
    6. Sync the directory again
    7. Reopen the live log for appends

    Steps 1-4 are prepare(), step 5 is swap() and steps 6-7 are reopen().
    Until swap() succeeds the live log is never touched; discard() removes
    whatever prepare() left behind.

    Thread Safety:
    - None. The caller must not mutate the table while compacting.
    """

    def __init__(self, path: str) -> None:
        """
        Initialize compactor.

        Args:
            path: Absolute path of the live log.
        """
        self._path = path
        self._dir = os.path.dirname(path)
        self._temp_path, self._staging_path = artifact_paths(path)

    @property
    def temp_path(self) -> str:
        return self._temp_path

    @property
    def staging_path(self) -> str:
        return self._staging_path

    def prepare(self, table: dict[bytes, bytes]) -> int:
        """
        Write the compacted log and stage it next to the live log.

        Keys are written in sorted order so the same table always produces
        the same bytes.

        Args:
            table: Current key -> value state.

        Returns:
            Size of the compacted log in bytes.

        Raises:
            OSError: On any file-system failure. Artifacts created by this
                call are removed before the error propagates.
        """
        # Step 1: exclusive create, never clobber a leftover artifact
        temp = open(self._temp_path, "xb")
        logger.debug(f"Compaction: created {self._temp_path}")

        try:
            size = self._write_snapshot(temp, table)
        except Exception:
            temp.close()
            self._remove(self._temp_path)
            raise

        try:
            # Step 3: stage under a name distinct from temp and live
            os.rename(self._temp_path, self._staging_path)
        except Exception:
            self._remove(self._temp_path)
            raise
        logger.debug(f"Compaction: staged {self._staging_path}")

        try:
            # Step 4: make the staging rename durable
            sync_directory(self._dir)
        except Exception:
            self._remove(self._staging_path)
            raise

        return size

    def _write_snapshot(self, temp: BinaryIO, table: dict[bytes, bytes]) -> int:
        """Step 2: one Set entry per key, then sync and a checked close."""
        size = 0
        for key, value in sorted(table.items()):
            size += append_entry(temp, encode_set(key, value), sync=False)
        sync_file(temp)
        temp.close()
        logger.debug(f"Compaction: wrote {len(table)} entries ({size} bytes)")
        return size

    def swap(self) -> None:
        """Step 5: atomically replace the live log with the staged one."""
        os.replace(self._staging_path, self._path)
        logger.debug(f"Compaction: swapped {self._staging_path} -> {self._path}")

    def reopen(self) -> BinaryIO:
        """
        Steps 6-7: make the swap durable and open the new log for appends.

        Returns:
            The compacted live log, positioned at its end.
        """
        sync_directory(self._dir)
        file = open(self._path, "ab+")
        file.seek(0, os.SEEK_END)
        return file

    def discard(self) -> None:
        """Remove any temp or staging file left by an unfinished compaction."""
        self._remove(self._temp_path)
        self._remove(self._staging_path)

    def _remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            # Rollback keeps going; the original error is what the caller sees
            logger.warning(f"Compaction: failed to remove {path}: {e}")
