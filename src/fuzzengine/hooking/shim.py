"""Dispatch shims for hooked call sites.

hook_callable builds the wrapper an instrumentation pass installs in place
of a hooked function inside the code it rewrites. The wrapper never holds a
hook directly: it carries registry handles and routes every call through
HookManager.call_hook.

Call order:
    1. BEFORE hooks, in registration order
    2. The REPLACE hook, or the original function
    3. AFTER hooks, in registration order

When the target is a coroutine function, or the AFTER hooks are async, the
wrapper is a coroutine function; async AFTER hooks are awaited one after
another so an exception in one skips the rest.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import functools
import inspect
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from fuzzengine.hooking.manager import HookManager

__all__ = ["hook_callable"]


def hook_callable[F: Callable[..., Any]](
    manager: HookManager, func: F, target: str, path: str
) -> F:
    """Wrap ``func`` so calls dispatch through the hooks matching ``target``.

    Args:
        manager: Registry that owns the hooks
        func: Function or bound method being instrumented
        target: Function name hooks are matched against
        path: Module path hooks' package patterns are matched against

    Returns:
        ``func`` itself when no hook matches, otherwise the dispatch shim.

    Raises:
        HookConfigurationError: If the matching hooks cannot be combined.
    """
    matches = manager.matching_hooks(target, path)
    if not matches.has_hooks():
        return func

    before = [manager.hook_index(h) for h in matches.before_hooks]
    after = [manager.hook_index(h) for h in matches.after_hooks]
    replace = manager.hook_index(matches.replace_hooks[0]) if matches.has_replace_hooks() else None
    receiver = func.__self__ if inspect.ismethod(func) else None

    def original_for(kwargs: dict[str, Any]) -> Callable[..., Any]:
        return functools.partial(func, **kwargs) if kwargs else func

    if inspect.iscoroutinefunction(func) or matches.has_async_after_hooks():
        awaits_after = matches.has_async_after_hooks()

        @functools.wraps(func)
        async def async_shim(*args: Any, **kwargs: Any) -> Any:
            params = list(args)
            for handle in before:
                manager.call_hook(handle, receiver, params, None)
            if replace is not None:
                result = manager.call_hook(replace, receiver, params, original_for(kwargs))
            else:
                result = func(*params, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            for handle in after:
                outcome = manager.call_hook(handle, receiver, params, result)
                if awaits_after and inspect.isawaitable(outcome):
                    await outcome
            return result

        return async_shim  # type: ignore[return-value]

    @functools.wraps(func)
    def shim(*args: Any, **kwargs: Any) -> Any:
        params = list(args)
        for handle in before:
            manager.call_hook(handle, receiver, params, None)
        if replace is not None:
            return manager.call_hook(replace, receiver, params, original_for(kwargs))
        result = func(*params, **kwargs)
        for handle in after:
            manager.call_hook(handle, receiver, params, result)
        return result

    return shim  # type: ignore[return-value]
