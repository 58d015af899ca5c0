"""Hook records and hook bookkeeping.

A Hook intercepts one named function inside every module whose path
contains the hook's package pattern. Three kinds exist:

    BEFORE  callback(receiver, args, call_site_id)
            Runs first; the original call proceeds afterwards.
    REPLACE callback(receiver, args, call_site_id, original)
            Its return value becomes the call's result.
    AFTER   callback(receiver, args, call_site_id, result)
            Runs once the original call produced ``result``.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

__all__ = ["Hook", "HookFn", "HookTracker", "HookType"]

logger = logging.getLogger(__name__)

# Hook callbacks are user code with kind-dependent arity; see module docstring.
type HookFn = Callable[..., Any]


class HookType(StrEnum):
    """Interception kind of a hook.

    StrEnum provides automatic string conversion: str(HookType.BEFORE) == "before"
    """

    BEFORE = "before"
    """Observe arguments before the call."""

    AFTER = "after"
    """Observe the result after the call."""

    REPLACE = "replace"
    """Substitute the call entirely."""


@dataclass(frozen=True, slots=True, eq=False)
class Hook:
    """Immutable hook registration.

    Hooks compare by identity: registering the same callback twice yields two
    distinct hooks with distinct handles.

    Attributes:
        type: Interception kind
        target: Exact name of the intercepted function
        pkg: Package pattern, matched as a substring of the module path
        is_async: Callback returns an awaitable (AFTER hooks only)
        callback: User callback
    """

    type: HookType
    target: str
    pkg: str
    is_async: bool
    callback: HookFn

    def match(self, pkg: str, target: str) -> bool:
        """Check whether this hook applies to ``target`` defined in ``pkg``."""
        return self.pkg in pkg and target == self.target


@dataclass(slots=True)
class HookTracker:
    """Tracks which registered hook targets were applied during instrumentation.

    Attributes:
        applied: Targets intercepted at least once
        available: Targets seen in instrumented code but not intercepted
        not_applied: Requested targets never seen at all
    """

    applied: set[str] = field(default_factory=set)
    available: set[str] = field(default_factory=set)
    not_applied: set[str] = field(default_factory=set)

    def add_applied(self, target: str) -> None:
        self.applied.add(target)
        self.available.discard(target)

    def add_available(self, target: str) -> None:
        if target not in self.applied:
            self.available.add(target)

    def categorize_unknown(self, requested: Iterable[Hook]) -> HookTracker:
        """Mark requested targets that were neither applied nor available."""
        for hook in requested:
            if hook.target not in self.applied and hook.target not in self.available:
                self.not_applied.add(hook.target)
        return self

    def clear(self) -> None:
        self.applied.clear()
        self.available.clear()
        self.not_applied.clear()

    def log_summary(self) -> None:
        """Log the sorted hook summary at DEBUG level."""
        logger.debug("[Hook] Summary:")
        for title, names in (
            ("Not applied", self.not_applied),
            ("Applied", self.applied),
            ("Available", self.available),
        ):
            logger.debug("[Hook]    %s:", title)
            for name in sorted(names):
                logger.debug("[Hook]      %s", name)
