"""Fuzz testing infrastructure for fuzzengine.

This package contains:
- test_provider_property: Decoder bounds and a byte-accounting state machine
- test_hooking_property: Hook combination rules and dispatch order
- test_edge_ids_property: Edge-ID range agreement between strategies

Python 3.13+.
"""
