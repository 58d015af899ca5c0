#!/usr/bin/env python3
# FUZZ_PLUGIN_HEADER_START
# FUZZ_PLUGIN: provider - Structured Input Decoder
# Intentional: This header is intentionally placed for dynamic plugin discovery.
# FUZZ_PLUGIN_HEADER_END
"""Structured Input Decoder Fuzzer (Atheris).

Targets: fuzzengine.provider (FuzzedDataProvider)

Concern boundary: decoder invariants only. Every draw must stay inside the
requested bounds, consume no more bytes than documented, and never read a
byte twice. Invalid parameters must raise InvalidArgumentError and nothing
else. Hook dispatch and edge-ID allocation belong to fuzz_hooks.

Decoder parameters are themselves drawn from the decoder under test: the
input is both parameter source and payload.

Requires Python 3.13+ (uses PEP 695 type aliases).
"""

from __future__ import annotations

import atexit
import logging
import math
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
class ProviderMetrics:
    """Domain-specific metrics for the provider fuzzer."""

    exhausted_inputs: int = 0
    split_range_draws: int = 0
    invalid_argument_rejections: int = 0


class ProviderFuzzError(Exception):
    """Raised when a decoder invariant breach is detected."""


# --- Constants ---

_PATTERN_WEIGHTS: Sequence[tuple[str, int]] = (
    ("integral_in_range", 10),
    ("big_integral_in_range", 6),
    ("double_in_range", 8),
    ("wide_double_range", 4),
    ("probabilities", 4),
    ("pick_values", 6),
    ("strings", 8),
    ("bulk_front_reads", 8),
    ("interleaved", 10),
    ("invalid_arguments", 4),
)

_PATTERN_SCHEDULE: tuple[str, ...] = weighted_schedule(_PATTERN_WEIGHTS)

_ENCODINGS: Sequence[str] = ("ascii", "utf-8", "latin-1", "utf-16", "utf-32")


# --- Module State ---

_state = HarnessState(name="provider", target="FuzzedDataProvider (structured input decoding)")
_domain = ProviderMetrics()

_REPORT_PATH = pathlib.Path(".fuzz_atheris_corpus", "provider", "fuzz_provider_report.json")


def _build_stats() -> dict[str, Any]:
    stats = base_stats(_state)
    stats["exhausted_inputs"] = _domain.exhausted_inputs
    stats["split_range_draws"] = _domain.split_range_draws
    stats["invalid_argument_rejections"] = _domain.invalid_argument_rejections
    return stats


def _emit_checkpoint() -> None:
    emit_report(_state, _build_stats(), _REPORT_PATH, final=False)


def _emit_report() -> None:
    emit_report(_state, _build_stats(), _REPORT_PATH, final=True)


atexit.register(_emit_report)

# --- Suppress logging and instrument imports ---
logging.getLogger("fuzzengine").setLevel(logging.CRITICAL)

with atheris.instrument_imports(include=["fuzzengine"]):
    from fuzzengine import FuzzedDataProvider, InvalidArgumentError


# --- Invariant Helpers ---


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise ProviderFuzzError(message)


def _consumed(fdp: FuzzedDataProvider, before: int) -> int:
    return before - fdp.remaining_bytes


# --- Patterns ---


def _integral_in_range(fdp: FuzzedDataProvider) -> None:
    low = fdp.consume_big_integral(6, True)
    span = fdp.consume_integral(6)
    before = fdp.remaining_bytes
    value = fdp.consume_integral_in_range(low, low + span)
    _check(low <= value <= low + span, f"{value} outside [{low}, {low + span}]")
    limit = math.ceil(span.bit_length() / 8)
    _check(_consumed(fdp, before) <= limit, f"range draw used more than {limit} bytes")


def _big_integral_in_range(fdp: FuzzedDataProvider) -> None:
    width = fdp.consume_integral_in_range(0, 32)
    low = -fdp.consume_big_integral(width)
    high = fdp.consume_big_integral(width)
    value = fdp.consume_big_integral_in_range(low, high)
    _check(low <= value <= high, f"{value} outside [{low}, {high}]")


def _double_in_range(fdp: FuzzedDataProvider) -> None:
    low = fdp.consume_double()
    high = fdp.consume_double()
    if low > high:
        low, high = high, low
    before = fdp.remaining_bytes
    value = fdp.consume_double_in_range(low, high)
    _check(low <= value <= high, f"{value!r} outside [{low!r}, {high!r}]")
    _check(_consumed(fdp, before) <= 9, "double range draw used more than 9 bytes")


def _wide_double_range(fdp: FuzzedDataProvider) -> None:
    _domain.split_range_draws += 1
    value = fdp.consume_double()
    _check(math.isfinite(value), f"consume_double returned {value!r}")
    single = fdp.consume_float()
    _check(math.isfinite(single) and abs(single) <= 3.4028235e38, f"float {single!r}")


def _probabilities(fdp: FuzzedDataProvider) -> None:
    for value in (fdp.consume_probability_float(), fdp.consume_probability_double()):
        _check(0.0 <= value <= 1.0, f"probability {value!r}")


def _pick_values(fdp: FuzzedDataProvider) -> None:
    pool = list(range(fdp.consume_integral_in_range(1, 64)))
    count = fdp.consume_integral_in_range(0, len(pool))
    picked = fdp.pick_values(pool, count)
    _check(len(picked) == count, "pick_values returned the wrong count")
    _check(len(set(picked)) == count, "pick_values repeated a position")
    _check(fdp.pick_value(pool) in pool, "pick_value left the pool")


def _strings(fdp: FuzzedDataProvider) -> None:
    encoding = fdp.pick_value(_ENCODINGS)
    printable = fdp.consume_boolean()
    max_length = fdp.consume_integral_in_range(0, 512)
    before = fdp.remaining_bytes
    text = fdp.consume_string(max_length, encoding, printable)
    _check(_consumed(fdp, before) == min(max_length, before), "string read size mismatch")
    if printable:
        _check(all(0x20 <= ord(c) <= 0x7E for c in text), "non-printable character")
    elif encoding == "ascii":
        _check(all(ord(c) < 0x80 for c in text), "ascii decode kept the high bit")


def _bulk_front_reads(fdp: FuzzedDataProvider) -> None:
    count = fdp.consume_integral_in_range(0, 16)
    width = fdp.consume_integral_in_range(1, 6)
    before = fdp.remaining_bytes
    values = fdp.consume_integrals(count, width)
    _check(all(0 <= v < 1 << (8 * width) for v in values), "integral wider than requested")
    _check(_consumed(fdp, before) <= count * width, "front read over-consumed")
    _check(len(fdp.consume_booleans(count)) <= count, "too many booleans")
    strings = fdp.consume_string_array(count, width)
    _check(len(strings) == count, "string array length mismatch")


def _interleaved(fdp: FuzzedDataProvider) -> None:
    total = fdp.remaining_bytes
    taken = 0
    while fdp.remaining_bytes:
        before = fdp.remaining_bytes
        match fdp.consume_integral(1) % 4:
            case 0:
                fdp.consume_bytes(fdp.consume_integral_in_range(0, 8))
            case 1:
                fdp.consume_number()
            case 2:
                fdp.consume_integral(3, True)
            case _:
                fdp.consume_string(4, "utf-8")
        step = _consumed(fdp, before)
        _check(step > 0, "interleaved step consumed nothing")
        taken += step
    _check(taken == total, f"consumed {taken} of {total} bytes")
    _domain.exhausted_inputs += 1


def _invalid_arguments(fdp: FuzzedDataProvider) -> None:
    calls = (
        lambda: fdp.consume_integral_in_range(1, 0),
        lambda: fdp.consume_integral_in_range(0, 2**53),
        lambda: fdp.consume_bytes(-1),
        lambda: fdp.consume_integral(7),
        lambda: fdp.pick_value([]),
        lambda: fdp.consume_string(4, "no-such-codec"),
    )
    call = calls[fdp.consume_integral_in_range(0, len(calls) - 1)]
    before = fdp.remaining_bytes
    try:
        call()
    except InvalidArgumentError:
        _domain.invalid_argument_rejections += 1
    else:
        raise ProviderFuzzError("invalid parameters were accepted")
    _check(fdp.remaining_bytes == before, "rejected call consumed input")


_PATTERN_DISPATCH: dict[str, Any] = {
    "integral_in_range": _integral_in_range,
    "big_integral_in_range": _big_integral_in_range,
    "double_in_range": _double_in_range,
    "wide_double_range": _wide_double_range,
    "probabilities": _probabilities,
    "pick_values": _pick_values,
    "strings": _strings,
    "bulk_front_reads": _bulk_front_reads,
    "interleaved": _interleaved,
    "invalid_arguments": _invalid_arguments,
}


# --- Main Entry Point ---


def test_one_input(data: bytes) -> None:
    """Atheris entry point: check decoder invariants on one input."""
    pattern_name = start_iteration(_state, _PATTERN_SCHEDULE, _emit_checkpoint)
    start_time = time.perf_counter()
    try:
        _PATTERN_DISPATCH[pattern_name](FuzzedDataProvider(data))
    except InvalidArgumentError as e:
        # Parameters drawn from short inputs can still hit documented limits
        count_error(_state, e)
    except Exception:
        _state.findings += 1
        raise
    finally:
        finish_iteration(_state, pattern_name, start_time)


def main() -> None:
    """Run the provider fuzzer with CLI support."""
    configure_from_cli(_state, "Structured input decoder fuzzer using Atheris/libFuzzer")
    print_banner(_state, "Structured Input Decoder Fuzzer (Atheris)", _PATTERN_SCHEDULE)
    run_fuzzer(_state, test_one_input)


if __name__ == "__main__":
    main()
