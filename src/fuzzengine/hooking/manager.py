"""Hook registry and call-time dispatcher.

HookManager keeps an append-only list of Hook records; the index of a hook
in that list is its handle. Instrumented call sites (see
fuzzengine.hooking.shim) and the builtin interception table (see
fuzzengine.hooking.interceptor) route every intercepted call through
HookManager.call_hook with that handle.

Combination rules, enforced by matching_hooks before any call executes:
    - At most one REPLACE hook per call site
    - REPLACE never combined with BEFORE or AFTER hooks
    - AFTER hooks all sync or all async

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
import sys
import traceback
from typing import TYPE_CHECKING, Any

from fuzzengine.errors import HookConfigurationError
from fuzzengine.hooking.hook import Hook, HookFn, HookType

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["HookManager", "MatchingHooksResult"]

logger = logging.getLogger(__name__)

_HASH_MASK = 0xFFFFFFFF
_HASH_SIGN = 0x80000000


class MatchingHooksResult:
    """Hooks matching one call site, grouped by kind in registration order."""

    __slots__ = ("after_hooks", "before_hooks", "replace_hooks")

    def __init__(self) -> None:
        self.before_hooks: list[Hook] = []
        self.replace_hooks: list[Hook] = []
        self.after_hooks: list[Hook] = []

    def add_hook(self, hook: Hook) -> None:
        match hook.type:
            case HookType.BEFORE:
                self.before_hooks.append(hook)
            case HookType.REPLACE:
                self.replace_hooks.append(hook)
            case HookType.AFTER:
                self.after_hooks.append(hook)

    def verify(self) -> None:
        """Validate the hook combination.

        Raises:
            HookConfigurationError: If more than one REPLACE hook matched,
                REPLACE is mixed with BEFORE/AFTER hooks, or AFTER hooks
                mix sync and async callbacks.
        """
        if len(self.replace_hooks) > 1:
            msg = (
                "For a given target function, one REPLACE hook can be configured. "
                f"Found: {len(self.replace_hooks)}"
            )
            raise HookConfigurationError(msg)
        if self.has_replace_hooks() and (self.has_before_hooks() or self.has_after_hooks()):
            msg = (
                "For a given target function, REPLACE hooks cannot be mixed up with "
                f"BEFORE/AFTER hooks. Found {len(self.replace_hooks)} REPLACE hooks "
                f"and {len(self.before_hooks) + len(self.after_hooks)} BEFORE/AFTER hooks"
            )
            raise HookConfigurationError(msg)
        if self.has_after_hooks() and len({h.is_async for h in self.after_hooks}) > 1:
            msg = (
                "For a given target function, AFTER hooks have to be either "
                "all sync or all async."
            )
            raise HookConfigurationError(msg)

    def hooks(self) -> list[Hook]:
        return [*self.before_hooks, *self.after_hooks, *self.replace_hooks]

    def has_hooks(self) -> bool:
        return self.has_before_hooks() or self.has_replace_hooks() or self.has_after_hooks()

    def has_before_hooks(self) -> bool:
        return len(self.before_hooks) != 0

    def has_replace_hooks(self) -> bool:
        return len(self.replace_hooks) != 0

    def has_after_hooks(self) -> bool:
        return len(self.after_hooks) != 0

    def has_async_after_hooks(self) -> bool:
        return self.has_after_hooks() and self.after_hooks[0].is_async


class HookManager:
    """Append-only hook registry with handle-based dispatch.

    One instance per FuzzSession. Not thread-safe: registration happens at
    harness start, dispatch on the fuzzing thread.

    Example:
        >>> manager = HookManager()
        >>> hook = manager.register_before_hook("system", "os", False, print)
        >>> manager.hook_index(hook)
        0
        >>> manager.matching_hooks("system", "/usr/lib/python3/os.py").has_hooks()
        True
    """

    __slots__ = ("_hooks",)

    def __init__(self) -> None:
        self._hooks: list[Hook] = []

    def register_hook(
        self,
        hook_type: HookType,
        target: str,
        pkg: str,
        is_async: bool,
        callback: HookFn,
    ) -> Hook:
        """Register a hook and return it; its handle is its registry index."""
        hook = Hook(HookType(hook_type), target, pkg, is_async, callback)
        self._hooks.append(hook)
        logger.debug(
            "Registered %s hook #%d for %s in %r", hook.type, len(self._hooks) - 1, target, pkg
        )
        return hook

    def register_before_hook(
        self, target: str, pkg: str, is_async: bool, callback: HookFn
    ) -> Hook:
        return self.register_hook(HookType.BEFORE, target, pkg, is_async, callback)

    def register_replace_hook(
        self, target: str, pkg: str, is_async: bool, callback: HookFn
    ) -> Hook:
        return self.register_hook(HookType.REPLACE, target, pkg, is_async, callback)

    def register_after_hook(
        self, target: str, pkg: str, is_async: bool, callback: HookFn
    ) -> Hook:
        return self.register_hook(HookType.AFTER, target, pkg, is_async, callback)

    @property
    def hooks(self) -> Sequence[Hook]:
        return tuple(self._hooks)

    def clear_hooks(self) -> None:
        self._hooks = []

    def hook_index(self, hook: Hook) -> int:
        """Return the handle of a registered hook.

        Raises:
            HookConfigurationError: If the hook was not registered here.
        """
        for index, candidate in enumerate(self._hooks):
            if candidate is hook:
                return index
        msg = f"Hook for {hook.target!r} is not registered"
        raise HookConfigurationError(msg)

    def matching_hooks(self, target: str, filepath: str) -> MatchingHooksResult:
        """Collect and validate the hooks for ``target`` defined in ``filepath``.

        Raises:
            HookConfigurationError: If the matching hooks cannot be combined.
        """
        matches = MatchingHooksResult()
        for hook in self._hooks:
            if hook.match(filepath, target):
                matches.add_hook(hook)
        matches.verify()
        return matches

    def has_functions_to_hook(self, filepath: str) -> bool:
        return any(hook.pkg in filepath for hook in self._hooks)

    def get_matching_hooks(self, filepath: str) -> list[Hook]:
        return [hook for hook in self._hooks if hook.pkg in filepath]

    def call_hook(
        self,
        handle: int,
        receiver: object,
        args: list[Any],
        result_or_original: Any,
    ) -> Any:
        """Run the hook with ``handle`` for one intercepted call.

        Args:
            handle: Registry index of the hook
            receiver: Bound object of the call, or None for plain functions
            args: Positional arguments; BEFORE hooks may mutate the list
            result_or_original: The original callable for REPLACE hooks,
                the call result for AFTER hooks, ignored for BEFORE hooks

        Returns:
            The REPLACE callback's result, the AFTER callback's return value
            (awaited by the caller for async hooks), or None for BEFORE.

        Raises:
            HookConfigurationError: If no hook has this handle.
        """
        if not 0 <= handle < len(self._hooks):
            msg = f"Unknown hook handle {handle}"
            raise HookConfigurationError(msg)
        hook = self._hooks[handle]
        call_site = self.call_site_id(handle, hook.target)
        match hook.type:
            case HookType.BEFORE:
                hook.callback(receiver, args, call_site)
                return None
            case HookType.REPLACE | HookType.AFTER:
                return hook.callback(receiver, args, call_site, result_or_original)

    @staticmethod
    def call_site_id(handle: int, target: str) -> int:
        """Hash the current call stack into a signed 32-bit call-site identifier.

        Stable for one call location across iterations of a run. Distinct
        call sites may collide; the value is only approximately unique.
        """
        # Frame source text is not part of the hash.
        frames = traceback.StackSummary.extract(
            traceback.walk_stack(sys._getframe(1)), lookup_lines=False
        )
        snapshot = "\n".join(
            f"{frame.filename}:{frame.lineno}:{frame.name}" for frame in reversed(frames)
        )
        value = 0
        for char in f"{handle}:{target}\n{snapshot}":
            value = (value * 31 + ord(char)) & _HASH_MASK
        return value - (1 << 32) if value & _HASH_SIGN else value
