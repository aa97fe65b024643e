"""
In-memory state owned by the engine.

- ArtifactStore: live content of the schematic and every symbol
- HistoryEngine: bounded snapshot history per entity with a movable cursor
"""

from .artifacts import ArtifactStore, compute_hash
from .history import HistoryEngine, HistoryInfo

__all__ = [
    "ArtifactStore",
    "HistoryEngine",
    "HistoryInfo",
    "compute_hash",
]
