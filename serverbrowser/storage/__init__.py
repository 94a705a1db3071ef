"""
Storage Layer

RESPONSIBILITY: In-memory current snapshot and bounded history
ALLOWED INPUTS: Snapshots and samples from the Reconciler only
OUTPUTS: Immutable Snapshot and HistorySample tuples for readers

WHAT THIS LAYER MUST NOT DO:
============================
- Fetch from upstream
- Mutate a published Snapshot
- Reorder history samples
"""

from .snapshot_store import SnapshotStore
from .history import HistoryTracker

__all__ = ["SnapshotStore", "HistoryTracker"]
