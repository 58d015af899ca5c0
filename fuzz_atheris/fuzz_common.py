"""Shared harness plumbing for the fuzzengine Atheris fuzzers.

Each harness owns a HarnessState plus its own domain metrics dataclass and
drives one weighted pattern schedule. This module handles the parts every
harness repeats: dependency checks, round-robin pattern selection,
per-iteration timing and RSS sampling, JSON reports and the libFuzzer
command line.

Not a fuzz target itself -- no FUZZ_PLUGIN header.
"""

from __future__ import annotations

import argparse
import functools
import gc
import json
import os
import statistics
import sys
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Callable, Sequence

try:
    import psutil
except ImportError:
    psutil = None  # type: ignore[assignment]


type FuzzStats = dict[str, int | str | float]

GC_INTERVAL = 256
"""Iterations between gc.collect() calls; Atheris instrumentation leaks cycles."""

RSS_SAMPLE_INTERVAL = 100

DEFAULT_RSS_LIMIT_MB = 4096


def check_dependencies(dep_names: Sequence[str], dep_modules: Sequence[Any]) -> None:
    """Exit with install instructions when a harness dependency failed to import.

    Args:
        dep_names: Distribution names, e.g. ["psutil", "atheris"]
        dep_modules: Captured modules, None where the import failed
    """
    missing = [name for name, mod in zip(dep_names, dep_modules, strict=True) if mod is None]
    if not missing:
        return
    print("-" * 80, file=sys.stderr)
    print(f"ERROR: fuzzing needs {', '.join(missing)}", file=sys.stderr)
    print("Install with: pip install -e '.[fuzz]'", file=sys.stderr)
    print("-" * 80, file=sys.stderr)
    sys.exit(1)


@functools.cache
def _process() -> psutil.Process:
    return psutil.Process(os.getpid())


def rss_mb() -> float:
    """Resident set size of this process in MiB."""
    return _process().memory_info().rss / (1024 * 1024)


@dataclass
class HarnessState:
    """Observability state common to every fuzzengine harness."""

    name: str
    target: str
    checkpoint_interval: int = 500

    iterations: int = 0
    findings: int = 0
    status: str = "incomplete"

    pattern_counts: dict[str, int] = field(default_factory=dict)
    pattern_wall_ms: dict[str, float] = field(default_factory=dict)
    error_counts: dict[str, int] = field(default_factory=dict)

    iteration_ms: deque[float] = field(default_factory=lambda: deque(maxlen=10000))
    rss_samples_mb: deque[float] = field(default_factory=lambda: deque(maxlen=1000))
    initial_rss_mb: float = 0.0


def weighted_schedule(weights: Sequence[tuple[str, int]]) -> tuple[str, ...]:
    """Expand (pattern, weight) pairs into a schedule of sum(weights) slots."""
    return tuple(name for name, weight in weights for _ in range(weight))


def start_iteration(
    state: HarnessState,
    schedule: tuple[str, ...],
    on_checkpoint: Callable[[], None],
) -> str:
    """Count one iteration and return the pattern it runs.

    Patterns are picked round-robin by iteration number rather than from the
    input, so libFuzzer's coverage feedback cannot skew the distribution
    away from the schedule's weights.
    """
    if state.iterations == 0:
        state.initial_rss_mb = rss_mb()
    state.iterations += 1
    state.status = "running"
    if state.iterations % state.checkpoint_interval == 0:
        on_checkpoint()

    pattern = schedule[(state.iterations - 1) % len(schedule)]
    state.pattern_counts[pattern] = state.pattern_counts.get(pattern, 0) + 1
    return pattern


def finish_iteration(state: HarnessState, pattern: str, started: float) -> None:
    """Record timing for one iteration; call from test_one_input's finally block."""
    elapsed_ms = (time.perf_counter() - started) * 1000
    state.iteration_ms.append(elapsed_ms)
    state.pattern_wall_ms[pattern] = state.pattern_wall_ms.get(pattern, 0.0) + elapsed_ms

    if state.iterations % GC_INTERVAL == 0:
        gc.collect()
    if state.iterations % RSS_SAMPLE_INTERVAL == 0:
        state.rss_samples_mb.append(rss_mb())


def count_error(state: HarnessState, error: BaseException) -> None:
    """Count an expected exception under a short type/message key."""
    key = f"{type(error).__name__}_{str(error)[:30]}"
    state.error_counts[key] = state.error_counts.get(key, 0) + 1


def base_stats(state: HarnessState) -> FuzzStats:
    """Build the report fields every harness shares."""
    stats: FuzzStats = {
        "fuzzer": state.name,
        "status": state.status,
        "iterations": state.iterations,
        "findings": state.findings,
    }
    if state.iteration_ms:
        timings = list(state.iteration_ms)
        stats["iteration_mean_ms"] = round(statistics.mean(timings), 3)
        stats["iteration_max_ms"] = round(max(timings), 3)
    if state.rss_samples_mb:
        peak = max(state.rss_samples_mb)
        stats["rss_peak_mb"] = round(peak, 2)
        stats["rss_growth_mb"] = round(peak - state.initial_rss_mb, 2)

    for pattern, count in sorted(state.pattern_counts.items()):
        stats[f"pattern_{pattern}"] = count
        stats[f"wall_ms_{pattern}"] = round(state.pattern_wall_ms.get(pattern, 0.0), 1)
    for key, count in sorted(state.error_counts.items()):
        stats[f"error_{key}"] = count
    return stats


def emit_report(
    state: HarnessState,
    stats: FuzzStats,
    report_path: pathlib.Path,
    *,
    final: bool,
) -> None:
    """Print the stats as a marked JSON line on stderr and write them to a file.

    The final report marks the state complete. File errors are ignored so a
    report never masks a crash.
    """
    if final:
        state.status = "complete"
        stats["status"] = state.status
    marker = "SUMMARY" if final else "CHECKPOINT"
    report = json.dumps(stats, sort_keys=True)
    print(f"\n[{marker}-JSON-BEGIN]{report}[{marker}-JSON-END]", file=sys.stderr, flush=True)
    try:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(report, encoding="utf-8")
    except OSError:
        pass


def configure_from_cli(state: HarnessState, description: str) -> None:
    """Apply harness options and leave everything else in sys.argv for libFuzzer."""
    parser = argparse.ArgumentParser(
        description=description,
        epilog="All unrecognized arguments are passed to libFuzzer.",
    )
    parser.add_argument(
        "--checkpoint-interval",
        type=int,
        default=state.checkpoint_interval,
        help=f"Emit report every N iterations (default: {state.checkpoint_interval})",
    )
    args, remaining = parser.parse_known_args()
    state.checkpoint_interval = args.checkpoint_interval

    if not any(arg.startswith("-rss_limit_mb") for arg in remaining):
        remaining.append(f"-rss_limit_mb={DEFAULT_RSS_LIMIT_MB}")
    sys.argv = [sys.argv[0], *remaining]


def print_banner(state: HarnessState, title: str, schedule: tuple[str, ...]) -> None:
    print("=" * 80)
    print(title)
    print("=" * 80)
    print(f"Target:     {state.target}")
    print(f"Checkpoint: every {state.checkpoint_interval} iterations")
    print(f"Patterns:   {len(set(schedule))} ({len(schedule)} weighted slots)")
    print("=" * 80, flush=True)


def run_fuzzer(state: HarnessState, test_one_input: Callable[[bytes], None]) -> None:
    """Hand sys.argv to libFuzzer and start fuzzing ``test_one_input``."""
    import atheris  # noqa: PLC0415 - checked by each harness before import

    state.status = "running"
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()
