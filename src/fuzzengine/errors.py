"""Exception hierarchy for fuzzengine.

Parameter validation and protocol violations are raised synchronously and
never recovered inside the engine; they propagate to the harness, which
decides whether to abort the run. Input exhaustion and missing builtin hook
targets are benign and never raise.

Hierarchy:
    FuzzEngineError (base)
    ├─ InvalidArgumentError (also ValueError; decoder parameters)
    ├─ HookConfigurationError (conflicting hooks for one call site)
    ├─ CounterLimitExceededError (coverage counter buffer exhausted)
    ├─ EdgeIdSyncError (coordination file protocol)
    │  ├─ IdCountMismatchError (instrumentation disagrees with record)
    │  └─ LockTimeoutError (also TimeoutError; lock wait exhausted)
    └─ Finding (bug detector report, see fuzzengine.findings)

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CounterLimitExceededError",
    "EdgeIdSyncError",
    "FuzzEngineError",
    "HookConfigurationError",
    "IdCountMismatchError",
    "InvalidArgumentError",
    "LockTimeoutError",
    "SyncFileContext",
]


class FuzzEngineError(Exception):
    """Base exception for all fuzzengine errors."""


class InvalidArgumentError(FuzzEngineError, ValueError):
    """Malformed parameter passed to a FuzzedDataProvider operation.

    Examples:
    - Non-integral length (``consume_bytes(1.5)``)
    - ``min > max`` in a range draw
    - Fixed-width range needing more than 48 bits
    - Empty collection passed to ``pick_value``

    Subclasses ValueError so callers written against plain Python
    validation errors keep working.
    """


class HookConfigurationError(FuzzEngineError):
    """Hook registrations that cannot be combined for one call site.

    Raised by HookManager.matching_hooks before any intercepted call runs:
    - More than one REPLACE hook
    - REPLACE mixed with BEFORE/AFTER hooks
    - AFTER hooks that are neither all sync nor all async
    """


class CounterLimitExceededError(FuzzEngineError):
    """Edge ID would index past the hard coverage counter maximum."""


@dataclass(frozen=True, slots=True)
class SyncFileContext:
    """Context for coordination file failures.

    Attributes:
        sync_file: Path of the coordination file
        source_file: Source file being instrumented (optional)
        line: Offending record line (optional)
    """

    sync_file: str
    source_file: str | None = None
    line: str | None = None


class EdgeIdSyncError(FuzzEngineError):
    """Edge-ID coordination protocol failure.

    Attributes:
        context: Coordination file details (optional)
    """

    def __init__(self, message: str, context: SyncFileContext | None = None) -> None:
        """Initialize EdgeIdSyncError.

        Args:
            message: Human-readable error description
            context: Coordination file details for diagnosis
        """
        super().__init__(message)
        self.context = context


class IdCountMismatchError(EdgeIdSyncError):
    """Instrumentation used a different number of IDs than recorded.

    Another process already recorded the ID count for this source file.
    A mismatch means instrumentation is non-deterministic or the source
    changed between processes; continuing would alias coverage counters.

    Attributes:
        expected: ID count recorded in the coordination file
        actual: ID count consumed by this process
    """

    def __init__(
        self,
        message: str,
        *,
        expected: int,
        actual: int,
        context: SyncFileContext | None = None,
    ) -> None:
        super().__init__(message, context)
        self.expected = expected
        self.actual = actual


class LockTimeoutError(EdgeIdSyncError, TimeoutError):
    """Coordination file lock not acquired within the configured wait."""
