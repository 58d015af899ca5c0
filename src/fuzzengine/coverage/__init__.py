"""Coverage counters and edge-ID allocation.

Python 3.13+.
"""

from fuzzengine.coverage.counters import CoverageCounters, RegisterCountersFn
from fuzzengine.coverage.edge_ids import (
    EdgeIdRecord,
    EdgeIdStrategy,
    FileSyncIdStrategy,
    MemorySyncIdStrategy,
)
from fuzzengine.coverage.file_lock import AdvisoryFileLock

__all__ = [
    "AdvisoryFileLock",
    "CoverageCounters",
    "EdgeIdRecord",
    "EdgeIdStrategy",
    "FileSyncIdStrategy",
    "MemorySyncIdStrategy",
    "RegisterCountersFn",
]
