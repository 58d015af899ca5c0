#!/usr/bin/env python3
# FUZZ_PLUGIN_HEADER_START
# FUZZ_PLUGIN: hooks - Hook Dispatch and Edge-ID Allocation
# Intentional: This header is intentionally placed for dynamic plugin discovery.
# FUZZ_PLUGIN_HEADER_END
"""Hook Dispatch and Edge-ID Allocation Fuzzer (Atheris).

Targets: fuzzengine.hooking (HookManager, hook_callable, BuiltinInterceptor)
         fuzzengine.coverage (CoverageCounters, MemorySyncIdStrategy)

Concern boundary: registry behavior. Random hook registrations must be
accepted or rejected exactly by the combination rules, hooked calls must
run BEFORE -> target/REPLACE -> AFTER in registration order, and edge IDs
must be dense and keep the counter prefix large enough. Decoder invariants
belong to fuzz_provider; file-synchronized edge IDs are covered by the
Hypothesis suite because they need a filesystem.

Requires Python 3.13+ (uses PEP 695 type aliases).
"""

from __future__ import annotations

import atexit
import logging
import pathlib
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

# --- Dependency Checks ---
_psutil_mod: Any = None
_atheris_mod: Any = None

try:  # noqa: SIM105 - need module ref for check_dependencies
    import psutil as _psutil_mod  # type: ignore[no-redef]
except ImportError:
    pass

try:  # noqa: SIM105 - need module ref for check_dependencies
    import atheris as _atheris_mod  # type: ignore[no-redef]
except ImportError:
    pass

from fuzz_common import (  # noqa: E402 - after dependency capture  # pylint: disable=C0413
    HarnessState,
    base_stats,
    check_dependencies,
    configure_from_cli,
    count_error,
    emit_report,
    finish_iteration,
    print_banner,
    run_fuzzer,
    start_iteration,
    weighted_schedule,
)

check_dependencies(["psutil", "atheris"], [_psutil_mod, _atheris_mod])

import atheris  # noqa: E402  # pylint: disable=C0412,C0413

# --- Domain Metrics ---


@dataclass
class HooksMetrics:
    """Domain-specific metrics for the hooks fuzzer."""

    accepted_combinations: int = 0
    rejected_combinations: int = 0
    counter_growths: int = 0


class HooksFuzzError(Exception):
    """Raised when a registry or allocation invariant breach is detected."""


# --- Constants ---

_PATTERN_WEIGHTS: Sequence[tuple[str, int]] = (
    ("combinations", 10),
    ("dispatch_order", 10),
    ("builtin_interception", 5),
    ("edge_ids", 8),
)

_PATTERN_SCHEDULE: tuple[str, ...] = weighted_schedule(_PATTERN_WEIGHTS)

_BUILTIN_TARGETS: Sequence[tuple[str, str]] = (
    ("math", "sqrt"),
    ("os.path", "join"),
    ("os", "getcwd"),
    ("math", "pi"),
    ("no_such_module", "run"),
)


# --- Module State ---

_state = HarnessState(name="hooks", target="HookManager / hook_callable / edge-ID strategies")
_domain = HooksMetrics()

_REPORT_PATH = pathlib.Path(".fuzz_atheris_corpus", "hooks", "fuzz_hooks_report.json")


def _build_stats() -> dict[str, Any]:
    stats = base_stats(_state)
    stats["accepted_combinations"] = _domain.accepted_combinations
    stats["rejected_combinations"] = _domain.rejected_combinations
    stats["counter_growths"] = _domain.counter_growths
    return stats


def _emit_checkpoint() -> None:
    emit_report(_state, _build_stats(), _REPORT_PATH, final=False)


def _emit_report() -> None:
    emit_report(_state, _build_stats(), _REPORT_PATH, final=True)


atexit.register(_emit_report)

# --- Suppress logging and instrument imports ---
logging.getLogger("fuzzengine").setLevel(logging.CRITICAL)

with atheris.instrument_imports(include=["fuzzengine"]):
    from fuzzengine import (
        BuiltinInterceptor,
        CounterLimitExceededError,
        CoverageCounters,
        FuzzedDataProvider,
        HookConfigurationError,
        HookManager,
        HookType,
        MemorySyncIdStrategy,
        hook_callable,
    )


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise HooksFuzzError(message)


def _draw_kinds(fdp: FuzzedDataProvider) -> list[tuple[HookType, bool]]:
    kinds = []
    for _ in range(fdp.consume_integral_in_range(1, 6)):
        kind = fdp.pick_value(list(HookType))
        kinds.append((kind, kind is HookType.AFTER and fdp.consume_boolean()))
    return kinds


# --- Patterns ---


def _combinations(fdp: FuzzedDataProvider) -> None:
    kinds = _draw_kinds(fdp)
    manager = HookManager()
    for kind, is_async in kinds:
        manager.register_hook(kind, "target", "pkg", is_async, lambda *_: None)

    replaces = sum(1 for kind, _ in kinds if kind is HookType.REPLACE)
    after_modes = {is_async for kind, is_async in kinds if kind is HookType.AFTER}
    invalid = replaces > 1 or (replaces == 1 and len(kinds) > 1) or len(after_modes) > 1
    try:
        manager.matching_hooks("target", "pkg/module.py")
    except HookConfigurationError:
        _check(invalid, f"valid combination rejected: {kinds}")
        _domain.rejected_combinations += 1
    else:
        _check(not invalid, f"invalid combination accepted: {kinds}")
        _domain.accepted_combinations += 1


def _dispatch_order(fdp: FuzzedDataProvider) -> None:
    manager = HookManager()
    events: list[str] = []
    before = fdp.consume_integral_in_range(0, 4)
    after = fdp.consume_integral_in_range(0, 4)
    for index in range(before):
        manager.register_before_hook(
            "target", "pkg", False, lambda _r, _a, _s, i=index: events.append(f"b{i}")
        )
    for index in range(after):
        manager.register_after_hook(
            "target", "pkg", False, lambda _r, _a, _s, _res, i=index: events.append(f"a{i}")
        )

    def target(*values: int) -> int:
        events.append("t")
        return sum(values)

    args = fdp.consume_integrals(fdp.consume_integral_in_range(0, 8), 2)
    result = hook_callable(manager, target, "target", "pkg/mod.py")(*args)
    _check(result == sum(args), "hooked call changed the result")
    expected = [f"b{i}" for i in range(before)] + ["t"] + [f"a{i}" for i in range(after)]
    _check(events == expected, f"dispatch order {events} != {expected}")


def _builtin_interception(fdp: FuzzedDataProvider) -> None:
    manager = HookManager()
    interceptor = BuiltinInterceptor(manager)
    hooks = []
    for _ in range(fdp.consume_integral_in_range(1, 4)):
        pkg, target = fdp.pick_value(_BUILTIN_TARGETS)
        hooks.append(manager.register_before_hook(target, pkg, False, lambda *_: None))
    applied = interceptor.intercept_all(hooks)
    _check(applied == len(interceptor), "applied count disagrees with table size")
    _check(interceptor.intercept_all(hooks) == applied, "interception is not idempotent")


def _edge_ids(fdp: FuzzedDataProvider) -> None:
    growths: list[tuple[int, int]] = []
    counters = CoverageCounters(lambda old, new: growths.append((old, new)), 2, 256)
    strategy = MemorySyncIdStrategy(counters)
    issued = 0
    try:
        for file_index in range(fdp.consume_integral_in_range(0, 8)):
            name = f"file{file_index}.py"
            strategy.start_for_source_file(name)
            for _ in range(fdp.consume_integral_in_range(0, 64)):
                edge_id = strategy.next_edge_id()
                _check(edge_id == issued, f"edge ID {edge_id} != {issued}")
                _check(edge_id < counters.num_counters, "edge ID outside registered prefix")
                issued += 1
            strategy.commit_id_count(name)
    except CounterLimitExceededError:
        _check(issued == counters.max_counters, f"limit hit after {issued} IDs")
    _domain.counter_growths += len(growths) - 1
    for (_, previous_end), (start, _) in zip(growths, growths[1:], strict=False):
        _check(previous_end == start, "registered ranges are not contiguous")


_PATTERN_DISPATCH: dict[str, Any] = {
    "combinations": _combinations,
    "dispatch_order": _dispatch_order,
    "builtin_interception": _builtin_interception,
    "edge_ids": _edge_ids,
}


# --- Main Entry Point ---


def test_one_input(data: bytes) -> None:
    """Atheris entry point: check registry invariants on one input."""
    pattern_name = start_iteration(_state, _PATTERN_SCHEDULE, _emit_checkpoint)
    start_time = time.perf_counter()
    try:
        _PATTERN_DISPATCH[pattern_name](FuzzedDataProvider(data))
    except HookConfigurationError as e:
        count_error(_state, e)
    except Exception:
        _state.findings += 1
        raise
    finally:
        finish_iteration(_state, pattern_name, start_time)


def main() -> None:
    """Run the hooks fuzzer with CLI support."""
    configure_from_cli(_state, "Hook dispatch and edge-ID fuzzer using Atheris/libFuzzer")
    print_banner(
        _state, "Hook Dispatch and Edge-ID Allocation Fuzzer (Atheris)", _PATTERN_SCHEDULE
    )
    run_fuzzer(_state, test_one_input)


if __name__ == "__main__":
    main()
