"""Engine configuration for a fuzzing session.

Provides a single frozen dataclass that encapsulates the tunables of the
coverage counter buffer, the edge-ID coordination lock and hook
diagnostics. Constructed once at harness start and handed to FuzzSession.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from fuzzengine.constants import (
    DEFAULT_LOCK_INITIAL_BACKOFF,
    DEFAULT_LOCK_MAX_BACKOFF,
    DEFAULT_LOCK_MAX_WAIT,
    INITIAL_NUM_COUNTERS,
    MAX_NUM_COUNTERS,
)

__all__ = ["ENV_DEBUG", "ENV_ID_SYNC_FILE", "EngineConfig"]

ENV_ID_SYNC_FILE = "FUZZENGINE_ID_SYNC_FILE"
ENV_DEBUG = "FUZZENGINE_DEBUG"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Immutable configuration for FuzzSession.

    All fields have sensible defaults; ``EngineConfig()`` yields an
    in-process session with in-memory edge IDs.

    Attributes:
        id_sync_file: Coordination file shared by processes that instrument
            independently (fork/jobs/merge modes). None selects in-memory
            edge IDs (default: None).
        initial_counters: Counters registered before instrumentation
            starts (default: 512).
        max_counters: Hard cap on the counter buffer (default: 1048576).
        lock_max_wait: Seconds to wait for the coordination file lock
            before raising LockTimeoutError. None waits indefinitely
            (default: 60.0).
        lock_initial_backoff: First retry delay in seconds (default: 0.005).
        lock_max_backoff: Largest single retry delay in seconds
            (default: 0.1).
        debug_hooks: Log the hook summary when the session closes
            (default: False).

    Example:
        >>> config = EngineConfig(id_sync_file=Path("/tmp/ids"), lock_max_wait=5.0)
        >>> config.lock_max_wait
        5.0
    """

    id_sync_file: Path | None = None
    initial_counters: int = INITIAL_NUM_COUNTERS
    max_counters: int = MAX_NUM_COUNTERS
    lock_max_wait: float | None = DEFAULT_LOCK_MAX_WAIT
    lock_initial_backoff: float = DEFAULT_LOCK_INITIAL_BACKOFF
    lock_max_backoff: float = DEFAULT_LOCK_MAX_BACKOFF
    debug_hooks: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values at construction time.

        Raises:
            ValueError: If counter sizes are not positive, the initial size
                exceeds the maximum, or backoff/wait values are negative or
                inconsistent.
        """
        if self.initial_counters <= 0 or self.max_counters <= 0:
            msg = "counter sizes must be positive"
            raise ValueError(msg)
        if self.initial_counters > self.max_counters:
            msg = (
                f"initial_counters ({self.initial_counters}) exceeds "
                f"max_counters ({self.max_counters})"
            )
            raise ValueError(msg)
        if self.lock_max_wait is not None and self.lock_max_wait < 0:
            msg = f"lock_max_wait must be non-negative, got {self.lock_max_wait}"
            raise ValueError(msg)
        if self.lock_initial_backoff < 0 or self.lock_max_backoff < 0:
            msg = "lock backoff values must be non-negative"
            raise ValueError(msg)
        if self.lock_initial_backoff > self.lock_max_backoff:
            msg = "lock_initial_backoff must not exceed lock_max_backoff"
            raise ValueError(msg)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a configuration from environment variables.

        Reads FUZZENGINE_ID_SYNC_FILE (coordination file path) and
        FUZZENGINE_DEBUG (truthy enables hook summary logging). Unset or
        empty variables keep the defaults.

        Args:
            environ: Mapping to read from (default: os.environ)
        """
        env = os.environ if environ is None else environ
        sync_file = env.get(ENV_ID_SYNC_FILE, "")
        debug = env.get(ENV_DEBUG, "").strip().lower() in _TRUTHY
        return cls(
            id_sync_file=Path(sync_file) if sync_file else None,
            debug_hooks=debug,
        )
