"""Interception of functions that are not rewritten in source.

Builtin and C-extension functions (``os.system``, ``subprocess.run`` ...)
never pass through an instrumentation pass, so their call sites cannot be
rewritten. BuiltinInterceptor keeps an interception table keyed by hook
handle instead: each entry holds the captured original and a dispatch shim.
Callers reach the hooked behavior through the returned shim or through
BuiltinInterceptor.call; the owning module's attributes are never touched.

AFTER shims are coroutine functions when the hook is async or the
intercepted function is a coroutine function; they await the call result
before running the hook, then await an async hook.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import functools
import importlib
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from fuzzengine.errors import HookConfigurationError
from fuzzengine.hooking.hook import HookType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from fuzzengine.hooking.hook import Hook, HookTracker
    from fuzzengine.hooking.manager import HookManager

__all__ = ["BuiltinInterceptor", "Interception"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Interception:
    """One interception table entry.

    Attributes:
        hook: Hook being applied
        original: Function captured from the owning module
        shim: Dispatch wrapper routing calls through the hook
    """

    hook: Hook
    original: Callable[..., Any]
    shim: Callable[..., Any]


def _resolve(module_name: str, target: str) -> object:
    """Import ``module_name`` and walk the dotted ``target`` attribute path."""
    obj: object = importlib.import_module(module_name)
    for part in target.split("."):
        obj = getattr(obj, part)
    return obj


class BuiltinInterceptor:
    """Interception table for hooks on builtin functions.

    Example:
        >>> manager = HookManager()
        >>> hook = manager.register_replace_hook(
        ...     "getcwd", "os", False, lambda _r, _a, _id, _orig: "/sandbox"
        ... )
        >>> interceptor = BuiltinInterceptor(manager)
        >>> interceptor.intercept(hook)()
        '/sandbox'
    """

    __slots__ = ("_manager", "_table", "_tracker")

    def __init__(self, manager: HookManager, tracker: HookTracker | None = None) -> None:
        self._manager = manager
        self._tracker = tracker
        self._table: dict[int, Interception] = {}

    def intercept(self, hook: Hook) -> Callable[..., Any] | None:
        """Install ``hook`` in the table and return its dispatch shim.

        Idempotent: a hook that is already intercepted returns the existing
        shim without capturing the original again.

        Returns:
            The shim, or None if the module or target cannot be resolved or
            the target is not callable.
        """
        handle = self._manager.hook_index(hook)
        existing = self._table.get(handle)
        if existing is not None:
            return existing.shim

        try:
            original = _resolve(hook.pkg, hook.target)
        except (ImportError, AttributeError):
            logger.warning("Builtin hook target %s.%s not found, skipping", hook.pkg, hook.target)
            return None
        if not callable(original):
            logger.warning(
                "Builtin hook target %s.%s is not callable, skipping", hook.pkg, hook.target
            )
            return None

        shim = self._build_shim(handle, hook, original)
        self._table[handle] = Interception(hook, original, shim)
        if self._tracker is not None:
            self._tracker.add_applied(hook.target)
        logger.debug(
            "Intercepted builtin %s.%s with %s hook #%d", hook.pkg, hook.target, hook.type, handle
        )
        return shim

    def intercept_all(self, hooks: Iterable[Hook]) -> int:
        """Intercept every hook in ``hooks``; return how many were applied."""
        return sum(1 for hook in hooks if self.intercept(hook) is not None)

    def is_intercepted(self, hook: Hook) -> bool:
        return any(entry.hook is hook for entry in self._table.values())

    def original(self, handle: int) -> Callable[..., Any]:
        return self._entry(handle).original

    def call(self, handle: int, /, *args: Any, **kwargs: Any) -> Any:
        """Call the intercepted function registered under ``handle``.

        Raises:
            HookConfigurationError: If nothing is intercepted for ``handle``.
        """
        return self._entry(handle).shim(*args, **kwargs)

    def clear(self) -> None:
        self._table.clear()

    def __len__(self) -> int:
        return len(self._table)

    def _entry(self, handle: int) -> Interception:
        entry = self._table.get(handle)
        if entry is None:
            msg = f"No builtin interception for hook handle {handle}"
            raise HookConfigurationError(msg)
        return entry

    def _build_shim(
        self, handle: int, hook: Hook, original: Callable[..., Any]
    ) -> Callable[..., Any]:
        manager = self._manager
        awaits_hook = hook.is_async

        match hook.type:
            case HookType.BEFORE:

                def shim(*args: Any, **kwargs: Any) -> Any:
                    params = list(args)
                    manager.call_hook(handle, None, params, None)
                    return original(*params, **kwargs)

            case HookType.REPLACE:

                def shim(*args: Any, **kwargs: Any) -> Any:
                    bound = functools.partial(original, **kwargs) if kwargs else original
                    return manager.call_hook(handle, None, list(args), bound)

            case HookType.AFTER if awaits_hook or inspect.iscoroutinefunction(original):

                async def shim(*args: Any, **kwargs: Any) -> Any:
                    params = list(args)
                    result = original(*params, **kwargs)
                    if inspect.isawaitable(result):
                        result = await result
                    outcome = manager.call_hook(handle, None, params, result)
                    if awaits_hook and inspect.isawaitable(outcome):
                        await outcome
                    return result

            case HookType.AFTER:

                def shim(*args: Any, **kwargs: Any) -> Any:
                    params = list(args)
                    result = original(*params, **kwargs)
                    manager.call_hook(handle, None, params, result)
                    return result

        return functools.wraps(original)(shim)
