"""Exclusive advisory lock on the edge-ID coordination file.

Wraps POSIX ``flock`` with non-blocking attempts and a bounded, randomized
exponential backoff between them. Every AdvisoryFileLock opens its own file
description, so two instances contend for the lock even inside one process.

Limitations:
    - POSIX only (fcntl).
    - Advisory: processes that do not use this class are not excluded.
    - A crashed holder releases the lock when the OS closes its descriptor;
      a holder that hangs blocks others until lock_max_wait expires.

Python 3.13+.
"""

from __future__ import annotations

import fcntl
import logging
import os
import random
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from fuzzengine.constants import (
    DEFAULT_LOCK_INITIAL_BACKOFF,
    DEFAULT_LOCK_MAX_BACKOFF,
    DEFAULT_LOCK_MAX_WAIT,
)
from fuzzengine.errors import LockTimeoutError, SyncFileContext

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

__all__ = ["AdvisoryFileLock"]

logger = logging.getLogger(__name__)


class AdvisoryFileLock:
    """Non-reentrant exclusive lock on one file path.

    Example:
        >>> lock = AdvisoryFileLock(Path("/tmp/ids"), max_wait=5.0)
        >>> with lock.hold():
        ...     pass  # exclusive access to /tmp/ids
    """

    __slots__ = ("_fd", "_initial_backoff", "_max_backoff", "_max_wait", "_path")

    def __init__(
        self,
        path: Path,
        *,
        initial_backoff: float = DEFAULT_LOCK_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_LOCK_MAX_BACKOFF,
        max_wait: float | None = DEFAULT_LOCK_MAX_WAIT,
    ) -> None:
        """Initialize lock for ``path``.

        Args:
            path: File to lock; created if missing
            initial_backoff: Upper bound of the first random retry delay
            max_backoff: Cap of the doubling retry delay bound
            max_wait: Seconds before acquire() gives up. None waits
                indefinitely; 0.0 makes a single attempt.
        """
        if max_wait is not None and max_wait < 0:
            msg = f"max_wait must be non-negative, got {max_wait}"
            raise ValueError(msg)
        self._path = path
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._max_wait = max_wait
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def locked(self) -> bool:
        """True while this instance holds the lock."""
        return self._fd is not None

    def try_acquire(self) -> bool:
        """Make one non-blocking attempt; return whether the lock was taken.

        Raises:
            RuntimeError: If this instance already holds the lock.
        """
        if self._fd is not None:
            msg = f"Lock on {self._path} is already held by this instance"
            raise RuntimeError(msg)
        fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd
        return True

    def acquire(self) -> None:
        """Acquire the lock, retrying with randomized exponential backoff.

        Raises:
            LockTimeoutError: If the lock is still held elsewhere after
                max_wait seconds.
        """
        deadline = time.monotonic() + self._max_wait if self._max_wait is not None else None
        backoff = self._initial_backoff
        attempts = 1
        while not self.try_acquire():
            delay = random.uniform(0.0, backoff)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    msg = (
                        f"Timed out after {self._max_wait}s and {attempts} attempts "
                        f"waiting for lock on {self._path}"
                    )
                    raise LockTimeoutError(msg, SyncFileContext(str(self._path)))
                delay = min(delay, remaining)
            logger.debug("Lock on %s busy, retrying in %.3fs", self._path, delay)
            time.sleep(delay)
            backoff = min(backoff * 2, self._max_backoff)
            attempts += 1

    def release(self) -> None:
        """Release the lock. Releasing an unheld lock is a no-op."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    @contextmanager
    def hold(self) -> Generator[None]:
        """Hold the lock for the duration of the ``with`` block."""
        self.acquire()
        try:
            yield
        finally:
            self.release()
