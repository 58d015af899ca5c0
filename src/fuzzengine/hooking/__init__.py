"""Function hooking: registry, dispatcher and interception shims.

Python 3.13+. Zero external dependencies.
"""

from fuzzengine.hooking.hook import Hook, HookFn, HookTracker, HookType
from fuzzengine.hooking.interceptor import BuiltinInterceptor, Interception
from fuzzengine.hooking.manager import HookManager, MatchingHooksResult
from fuzzengine.hooking.shim import hook_callable

__all__ = [
    "BuiltinInterceptor",
    "Hook",
    "HookFn",
    "HookManager",
    "HookTracker",
    "HookType",
    "Interception",
    "MatchingHooksResult",
    "hook_callable",
]
