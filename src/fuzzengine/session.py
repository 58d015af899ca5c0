"""Fuzzing session: the explicit context shared by all engine subsystems.

A FuzzSession is constructed once at harness start and closed at harness
end. It owns every piece of per-run mutable state (hook registry,
builtin interception table, coverage counters, edge-ID strategy,
dictionaries, per-input callbacks, first finding) and is passed by
reference to the code that needs it.

Example:
    >>> with FuzzSession(EngineConfig()) as session:
    ...     session.hooks.register_before_hook("system", "os", False, check_cmd)
    ...     session.run_one(fuzz_target, b"\\x00\\x01")

Python 3.13+.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Self

from fuzzengine.callbacks import Callbacks
from fuzzengine.config import EngineConfig
from fuzzengine.coverage import (
    CoverageCounters,
    EdgeIdStrategy,
    FileSyncIdStrategy,
    MemorySyncIdStrategy,
)
from fuzzengine.dictionary import Dictionaries
from fuzzengine.findings import FindingTracker
from fuzzengine.hooking import BuiltinInterceptor, HookManager, HookTracker
from fuzzengine.provider import FuzzedDataProvider

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from fuzzengine.coverage import RegisterCountersFn

__all__ = ["FuzzSession"]

logger = logging.getLogger(__name__)


class FuzzSession:
    """Per-run engine state.

    Attributes:
        config: Engine configuration
        hooks: Hook registry and dispatcher
        hook_tracker: Applied/available hook bookkeeping
        interceptor: Builtin interception table
        counters: Coverage counter buffer
        edge_ids: Edge-ID strategy (file-synchronized when
            config.id_sync_file is set)
        dictionaries: libFuzzer dictionary entries
        callbacks: Per-input callbacks
        findings: First finding of the current input
    """

    __slots__ = (
        "_closed",
        "callbacks",
        "config",
        "counters",
        "dictionaries",
        "edge_ids",
        "findings",
        "hook_tracker",
        "hooks",
        "interceptor",
    )

    def __init__(
        self,
        config: EngineConfig | None = None,
        register_new_counters: RegisterCountersFn | None = None,
    ) -> None:
        """Initialize session.

        Args:
            config: Engine configuration (default: EngineConfig())
            register_new_counters: Native engine callback receiving
                (old_size, new_size) whenever the counter buffer grows
        """
        self.config = config if config is not None else EngineConfig()
        self.hooks = HookManager()
        self.hook_tracker = HookTracker()
        self.interceptor = BuiltinInterceptor(self.hooks, self.hook_tracker)
        self.counters = CoverageCounters(
            register_new_counters,
            self.config.initial_counters,
            self.config.max_counters,
        )
        self.edge_ids = self._make_edge_id_strategy()
        self.dictionaries = Dictionaries()
        self.callbacks = Callbacks()
        self.findings = FindingTracker()
        self._closed = False

    def _make_edge_id_strategy(self) -> EdgeIdStrategy:
        sync_file = self.config.id_sync_file
        if sync_file is None:
            return MemorySyncIdStrategy(self.counters)
        logger.debug("Synchronizing edge IDs through %s", sync_file)
        return FileSyncIdStrategy(
            sync_file,
            self.counters,
            lock_initial_backoff=self.config.lock_initial_backoff,
            lock_max_backoff=self.config.lock_max_backoff,
            lock_max_wait=self.config.lock_max_wait,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def new_provider(self, data: bytes | bytearray | memoryview) -> FuzzedDataProvider:
        """Create a fresh decoder for one input."""
        return FuzzedDataProvider(data)

    def run_one[R](self, target: Callable[[bytes], R], data: bytes) -> R:
        """Execute ``target`` on one input.

        Clears the previous input's finding, runs before-each callbacks,
        the target and after-each callbacks. After-each callbacks run even
        when the target raises.

        Raises:
            Finding: If a bug detector reported a finding the target caught.
            Exception: Whatever the target or a callback raised.
        """
        self.findings.clear()
        self.callbacks.run_before_each()
        try:
            result = target(data)
        finally:
            self.callbacks.run_after_each()
        if self.findings.first is not None:
            raise self.findings.first
        return result

    def close(self) -> None:
        """Tear the session down; idempotent."""
        if self._closed:
            return
        self._closed = True
        if self.config.debug_hooks:
            self.hook_tracker.categorize_unknown(self.hooks.hooks).log_summary()
        self.interceptor.clear()
        self.hooks.clear_hooks()
        self.hook_tracker.clear()
        self.callbacks.clear()
        self.dictionaries.clear()
        self.findings.clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
