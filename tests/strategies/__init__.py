"""Hypothesis strategies for fuzzengine property-based testing.

Strategies are organized by subsystem:

- provider: Raw fuzz inputs and decoder parameters
- hooks: Hook registrations and call-site layouts
- edge_ids: Source file sets for edge-ID allocation

Usage:
    from tests.strategies import fuzz_inputs, integral_ranges
    from tests.strategies.hooks import hook_registrations

Event-Emitting Strategies (HypoFuzz-Optimized):
    These strategies emit hypothesis.event() calls for coverage-guided fuzzing:
    - fuzz_inputs, integral_ranges, float_ranges, string_encodings
    - hook_registrations, hook_combinations
    - instrumentation_plans
"""

from .edge_ids import instrumentation_plans, source_file_names
from .hooks import hook_combinations, hook_registrations, hook_types
from .provider import (
    ENCODINGS,
    float_ranges,
    fuzz_inputs,
    integral_ranges,
    string_encodings,
)

__all__ = [
    "ENCODINGS",
    "float_ranges",
    "fuzz_inputs",
    "hook_combinations",
    "hook_registrations",
    "hook_types",
    "instrumentation_plans",
    "integral_ranges",
    "source_file_names",
    "string_encodings",
]
