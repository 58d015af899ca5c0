"""Per-input callbacks registered by fuzz targets and bug detectors.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from collections.abc import Callable

__all__ = ["Callbacks", "Thunk"]

type Thunk = Callable[[], object]


class Callbacks:
    """Callbacks run before and after each fuzz target invocation, in registration order."""

    __slots__ = ("_after_each", "_before_each")

    def __init__(self) -> None:
        self._before_each: list[Thunk] = []
        self._after_each: list[Thunk] = []

    def register_before_each(self, callback: Thunk) -> None:
        self._before_each.append(callback)

    def register_after_each(self, callback: Thunk) -> None:
        self._after_each.append(callback)

    def run_before_each(self) -> None:
        for callback in self._before_each:
            callback()

    def run_after_each(self) -> None:
        for callback in self._after_each:
            callback()

    def clear(self) -> None:
        self._before_each.clear()
        self._after_each.clear()
