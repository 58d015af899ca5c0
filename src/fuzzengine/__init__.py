"""fuzzengine - runtime core of a coverage-guided fuzzing engine.

Decodes raw fuzzer input into structured values, dispatches function hooks
for bug detectors, and assigns coverage edge IDs consistently across
independently instrumenting processes.

Public API:
    FuzzedDataProvider - Structured value decoder for one fuzz input
    FuzzSession - Per-run context owning all engine state
    EngineConfig - Immutable session configuration
    HookManager - Hook registry and call-time dispatcher
    HookType - BEFORE / AFTER / REPLACE
    hook_callable - Build a dispatch shim for a hooked function
    BuiltinInterceptor - Interception table for builtin functions
    CoverageCounters - Coverage counter buffer
    MemorySyncIdStrategy / FileSyncIdStrategy - Edge-ID allocation
    Finding - Bug detector report

Exceptions:
    FuzzEngineError - Base exception class
    InvalidArgumentError - Malformed decoder parameter
    HookConfigurationError - Hooks that cannot be combined
    CounterLimitExceededError - Counter buffer exhausted
    EdgeIdSyncError - Coordination file protocol failure
    IdCountMismatchError - Instrumentation disagrees with recorded range
    LockTimeoutError - Coordination lock wait exhausted

Submodules:
    fuzzengine.hooking - Hook records, registry, shims, builtin interception
    fuzzengine.coverage - Counters, edge-ID strategies, file lock
    fuzzengine.findings - First-finding tracking and report formatting
    fuzzengine.dictionary - libFuzzer dictionaries
    fuzzengine.callbacks - Per-input callbacks
"""

# Essential Public API - Minimal exports for clean namespace
from .config import EngineConfig
from .coverage import CoverageCounters, FileSyncIdStrategy, MemorySyncIdStrategy
from .errors import (
    CounterLimitExceededError,
    EdgeIdSyncError,
    FuzzEngineError,
    HookConfigurationError,
    IdCountMismatchError,
    InvalidArgumentError,
    LockTimeoutError,
)
from .findings import Finding
from .hooking import BuiltinInterceptor, HookManager, HookType, hook_callable
from .provider import FuzzedDataProvider
from .session import FuzzSession

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("fuzzengine")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "BuiltinInterceptor",
    "CounterLimitExceededError",
    "CoverageCounters",
    "EdgeIdSyncError",
    "EngineConfig",
    "FileSyncIdStrategy",
    "Finding",
    "FuzzEngineError",
    "FuzzSession",
    "FuzzedDataProvider",
    "HookConfigurationError",
    "HookManager",
    "HookType",
    "IdCountMismatchError",
    "InvalidArgumentError",
    "LockTimeoutError",
    "MemorySyncIdStrategy",
    "__version__",
    "hook_callable",
]
