"""Coverage counter buffer shared with the native fuzzing engine.

The buffer is allocated once at its maximum size; only a prefix of it is
registered with the engine. The registered prefix doubles whenever an edge
ID falls outside of it, up to the hard maximum.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fuzzengine.constants import INITIAL_NUM_COUNTERS, MAX_NUM_COUNTERS
from fuzzengine.errors import CounterLimitExceededError

__all__ = ["CoverageCounters", "RegisterCountersFn"]

logger = logging.getLogger(__name__)

# Called with (old_size, new_size) whenever the registered prefix grows.
type RegisterCountersFn = Callable[[int, int], None]


def _ignore_registration(_old: int, _new: int) -> None:
    pass


class CoverageCounters:
    """8-bit edge hit counters with on-demand registration growth.

    Example:
        >>> grown = []
        >>> counters = CoverageCounters(lambda old, new: grown.append((old, new)))
        >>> counters.enlarge_if_needed(600)
        >>> grown
        [(0, 512), (512, 1024)]
    """

    __slots__ = ("_buffer", "_max_counters", "_num_counters", "_register")

    def __init__(
        self,
        register_new_counters: RegisterCountersFn | None = None,
        initial: int = INITIAL_NUM_COUNTERS,
        maximum: int = MAX_NUM_COUNTERS,
    ) -> None:
        if not 0 < initial <= maximum:
            msg = f"initial ({initial}) must be in (0, {maximum}]"
            raise ValueError(msg)
        self._register = register_new_counters or _ignore_registration
        self._buffer = bytearray(maximum)
        self._max_counters = maximum
        self._num_counters = initial
        self._register(0, initial)

    @property
    def num_counters(self) -> int:
        """Size of the prefix currently registered with the engine."""
        return self._num_counters

    @property
    def max_counters(self) -> int:
        return self._max_counters

    @property
    def buffer(self) -> memoryview:
        """Read-only view of the full counter buffer."""
        return memoryview(self._buffer).toreadonly()

    def enlarge_if_needed(self, next_edge_id: int) -> None:
        """Grow the registered prefix so that ``next_edge_id`` indexes into it.

        Raises:
            CounterLimitExceededError: If doubling would exceed the maximum.
        """
        new_size = self._num_counters
        while next_edge_id >= new_size:
            new_size *= 2
            if new_size > self._max_counters:
                msg = f"Maximum number ({self._max_counters}) of coverage counts exceeded."
                raise CounterLimitExceededError(msg)
        if new_size > self._num_counters:
            self._register(self._num_counters, new_size)
            self._num_counters = new_size
            logger.info("New number of coverage counters %d", new_size)

    def increment(self, edge_id: int) -> None:
        """Count one hit; a saturated counter wraps to 1, never to 0."""
        counter = self._buffer[edge_id]
        self._buffer[edge_id] = 1 if counter == 255 else counter + 1

    def read(self, edge_id: int) -> int:
        return self._buffer[edge_id]

    def reset(self) -> None:
        """Zero every counter, keeping the registered size."""
        self._buffer[:] = bytes(self._max_counters)
