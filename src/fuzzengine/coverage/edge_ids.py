"""Edge-ID allocation for coverage instrumentation.

An instrumentation pass asks an EdgeIdStrategy for one fresh ID per
coverage edge while it rewrites a source file, bracketing each file with
start_for_source_file / commit_id_count.

Strategies:
    MemorySyncIdStrategy: plain counter, valid inside one process.
    FileSyncIdStrategy: coordinates ID ranges between processes that
        instrument the same sources independently (fork, jobs and merge
        modes) through a shared coordination file.

Coordination file format (UTF-8, one record per line, OS line endings):
    <source file>,<first ID>,<ID count>

Sorted by first ID, the record ranges are contiguous and never overlap.
New records are only appended while holding the file lock.

Python 3.13+.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fuzzengine.constants import (
    DEFAULT_LOCK_INITIAL_BACKOFF,
    DEFAULT_LOCK_MAX_BACKOFF,
    DEFAULT_LOCK_MAX_WAIT,
)
from fuzzengine.coverage.file_lock import AdvisoryFileLock
from fuzzengine.errors import EdgeIdSyncError, IdCountMismatchError, SyncFileContext

if TYPE_CHECKING:
    from pathlib import Path

    from fuzzengine.coverage.counters import CoverageCounters

__all__ = [
    "EdgeIdRecord",
    "EdgeIdStrategy",
    "FileSyncIdStrategy",
    "MemorySyncIdStrategy",
]

logger = logging.getLogger(__name__)

_FORBIDDEN_FILENAME_CHARS = frozenset(",\r\n")


@dataclass(frozen=True, slots=True)
class EdgeIdRecord:
    """Edge-ID range reserved for one source file.

    Attributes:
        filename: Instrumented source file
        first_id: First edge ID of the range
        id_count: Number of consecutive IDs in the range
    """

    filename: str
    first_id: int
    id_count: int

    @property
    def end_id(self) -> int:
        """First ID after this range."""
        return self.first_id + self.id_count

    @classmethod
    def parse(cls, line: str, sync_file: str = "") -> EdgeIdRecord:
        """Parse one coordination file line.

        Raises:
            EdgeIdSyncError: If the line does not have three comma-separated
                fields with integer ID values.
        """
        parts = line.split(",")
        if len(parts) == 3:
            try:
                return cls(parts[0], int(parts[1], 10), int(parts[2], 10))
            except ValueError:
                pass
        msg = (
            "Expected ID file line to be of the form "
            f'<source file>,<first ID>,<num IDs>, got "{line}"'
        )
        raise EdgeIdSyncError(msg, SyncFileContext(sync_file, line=line))

    def format(self) -> str:
        return f"{self.filename},{self.first_id},{self.id_count}"


class EdgeIdStrategy(ABC):
    """Hands out edge IDs and keeps the counter buffer large enough for them."""

    def __init__(self, counters: CoverageCounters | None = None, first_id: int = 0) -> None:
        self._counters = counters
        self._next_id = first_id

    def next_edge_id(self) -> int:
        """Return a fresh edge ID, growing the counter buffer if needed.

        Raises:
            CounterLimitExceededError: If the ID is past the counter maximum.
        """
        if self._counters is not None:
            self._counters.enlarge_if_needed(self._next_id)
        edge_id = self._next_id
        self._next_id += 1
        return edge_id

    @abstractmethod
    def start_for_source_file(self, filename: str) -> None:
        """Begin instrumenting ``filename``."""

    @abstractmethod
    def commit_id_count(self, filename: str) -> None:
        """Finish instrumenting ``filename``."""


class MemorySyncIdStrategy(EdgeIdStrategy):
    """Single-process strategy: IDs come from one increasing counter."""

    def start_for_source_file(self, filename: str) -> None:
        pass

    def commit_id_count(self, filename: str) -> None:
        pass


class FileSyncIdStrategy(EdgeIdStrategy):
    """Cross-process strategy backed by a shared coordination file.

    The first process to instrument a file holds the coordination lock from
    start_for_source_file until commit_id_count and appends the file's
    record. Every later process reuses the recorded range, releases the lock
    immediately, and verifies on commit that it consumed exactly the
    recorded number of IDs.

    Not reentrant: one source file at a time per instance.

    Example:
        >>> strategy = FileSyncIdStrategy(Path("/tmp/ids"))
        >>> strategy.start_for_source_file("a.py")
        >>> strategy.next_edge_id()
        0
        >>> strategy.commit_id_count("a.py")
    """

    def __init__(
        self,
        id_sync_file: Path,
        counters: CoverageCounters | None = None,
        *,
        lock_initial_backoff: float = DEFAULT_LOCK_INITIAL_BACKOFF,
        lock_max_backoff: float = DEFAULT_LOCK_MAX_BACKOFF,
        lock_max_wait: float | None = DEFAULT_LOCK_MAX_WAIT,
    ) -> None:
        super().__init__(counters)
        self._id_sync_file = id_sync_file
        self._lock = AdvisoryFileLock(
            id_sync_file,
            initial_backoff=lock_initial_backoff,
            max_backoff=lock_max_backoff,
            max_wait=lock_max_wait,
        )
        self._current_file: str | None = None
        self._first_edge_id: int | None = None
        self._cached_id_count: int | None = None

    @property
    def id_sync_file(self) -> Path:
        return self._id_sync_file

    def start_for_source_file(self, filename: str) -> None:
        """Reserve or look up the ID range of ``filename``.

        Raises:
            EdgeIdSyncError: If another file is still uncommitted, the name
                cannot be recorded, the coordination file is malformed, or it
                holds several records for ``filename``.
            LockTimeoutError: If the coordination lock stays busy past
                lock_max_wait.
        """
        if self._current_file is not None:
            msg = (
                f"start_for_source_file({filename!r}) called before "
                f"commit_id_count({self._current_file!r})"
            )
            raise EdgeIdSyncError(msg, self._context(filename))
        if _FORBIDDEN_FILENAME_CHARS.intersection(filename):
            msg = f"Source file name {filename!r} cannot be stored in the ID sync file"
            raise EdgeIdSyncError(msg, self._context(filename))

        self._lock.acquire()
        try:
            records = self._read_records()
            matching = [record for record in records if record.filename == filename]
            if len(matching) > 1:
                msg = f"Multiple entries for {filename} in ID sync file"
                raise EdgeIdSyncError(msg, self._context(filename))
        except BaseException:
            self._lock.release()
            raise

        if matching:
            # Range fixed by another process; nothing left to protect.
            self._first_edge_id = matching[0].first_id
            self._cached_id_count = matching[0].id_count
            self._lock.release()
            logger.debug(
                "Reusing edge IDs [%d, %d) for %s",
                matching[0].first_id,
                matching[0].end_id,
                filename,
            )
        else:
            # Append-only file: the last record ends the highest range.
            self._first_edge_id = records[-1].end_id if records else 0
            self._cached_id_count = None
            logger.debug("Reserving edge IDs from %d for %s", self._first_edge_id, filename)

        self._current_file = filename
        self._next_id = self._first_edge_id

    def commit_id_count(self, filename: str) -> None:
        """Record or verify the number of IDs used for ``filename``.

        Raises:
            EdgeIdSyncError: If called without a matching start or with
                a different file name than the pending start.
            IdCountMismatchError: If a recorded count disagrees with the
                number of IDs consumed.
        """
        first_edge_id = self._first_edge_id
        if first_edge_id is None:
            msg = "commit_id_count() is called before start_for_source_file()"
            raise EdgeIdSyncError(msg, self._context(filename))
        if filename != self._current_file:
            msg = (
                f"commit_id_count({filename!r}) does not match "
                f"start_for_source_file({self._current_file!r})"
            )
            raise EdgeIdSyncError(msg, self._context(filename))

        used = self._next_id - first_edge_id
        cached = self._cached_id_count
        self._current_file = None
        self._first_edge_id = None
        self._cached_id_count = None

        if cached is not None:
            if cached != used:
                msg = f"{filename} has {used} edges, but {cached} edges reserved in ID sync file"
                raise IdCountMismatchError(
                    msg, expected=cached, actual=used, context=self._context(filename)
                )
            return

        record = EdgeIdRecord(filename, first_edge_id, used)
        try:
            with self._id_sync_file.open("a", encoding="utf-8", newline="") as f:
                f.write(record.format() + os.linesep)
        finally:
            self._lock.release()
        logger.debug("Recorded edge IDs [%d, %d) for %s", record.first_id, record.end_id, filename)

    def _read_records(self) -> list[EdgeIdRecord]:
        text = self._id_sync_file.read_bytes().decode("utf-8")
        return [
            EdgeIdRecord.parse(line, str(self._id_sync_file))
            for line in text.split(os.linesep)
            if line
        ]

    def _context(self, filename: str) -> SyncFileContext:
        return SyncFileContext(str(self._id_sync_file), source_file=filename)
