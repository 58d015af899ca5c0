"""Shared constants for fuzzengine.

This module provides centralized limits used across the provider, hooking
and coverage packages. Placing constants here avoids circular imports and
provides a single source of truth.

Constants are grouped by domain:
- Decoder limits: Integer widths and IEEE-754 bounds for FuzzedDataProvider
- Counter limits: Size of the shared coverage counter buffer
- Lock backoff: Retry timing for the edge-ID coordination file

Python 3.13+. Zero external dependencies.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Decoder limits
    "MAX_INTEGRAL_BYTES",
    "MAX_SAFE_INTEGER",
    "MIN_FLOAT",
    "MAX_FLOAT",
    "MIN_DOUBLE",
    "MAX_DOUBLE",
    "UINT32_MAX",
    "UINT64_MAX",
    "PRINTABLE_FIRST",
    "PRINTABLE_COUNT",
    # Counter limits
    "INITIAL_NUM_COUNTERS",
    "MAX_NUM_COUNTERS",
    # Lock backoff
    "DEFAULT_LOCK_INITIAL_BACKOFF",
    "DEFAULT_LOCK_MAX_BACKOFF",
    "DEFAULT_LOCK_MAX_WAIT",
]

# ============================================================================
# DECODER LIMITS
# ============================================================================

# Widest integer the fixed-width path reads. Wider reads use the
# consume_big_integral* family.
MAX_INTEGRAL_BYTES: int = 6

# Largest integer the fixed-width range path accepts as an upper bound.
MAX_SAFE_INTEGER: int = 2**53 - 1

# Finite IEEE-754 single precision bounds (float32 max, widened to float64).
MIN_FLOAT: float = -3.4028235e38
MAX_FLOAT: float = 3.4028235e38

# Finite IEEE-754 double precision bounds.
MIN_DOUBLE: float = -1.7976931348623157e308
MAX_DOUBLE: float = 1.7976931348623157e308

# Divisors for probability draws.
UINT32_MAX: int = 0xFFFFFFFF
UINT64_MAX: int = 0xFFFFFFFFFFFFFFFF

# Printable ASCII window used by consume_string(printable=True): ' ' .. '~'.
PRINTABLE_FIRST: int = 0x20
PRINTABLE_COUNT: int = 0x7E - 0x20 + 1

# ============================================================================
# COUNTER LIMITS
# ============================================================================

# Counters registered with the native engine before any file is instrumented.
INITIAL_NUM_COUNTERS: int = 1 << 9

# Hard cap on the coverage counter buffer. The buffer is allocated at this
# size up front and only the registered prefix grows.
MAX_NUM_COUNTERS: int = 1 << 20

# ============================================================================
# LOCK BACKOFF
# ============================================================================

# First retry delay (seconds) when the coordination file is locked elsewhere.
DEFAULT_LOCK_INITIAL_BACKOFF: float = 0.005

# Upper bound on a single retry delay (seconds). 100 ms matches the widest
# random wait a contending process sleeps between attempts.
DEFAULT_LOCK_MAX_BACKOFF: float = 0.1

# Total time (seconds) a process waits for the coordination file before
# raising LockTimeoutError. A crashed lock holder therefore surfaces as an
# error instead of wedging every other process.
DEFAULT_LOCK_MAX_WAIT: float = 60.0
