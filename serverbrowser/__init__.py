"""
Server Browser: Ingestion & History Cache

This package keeps a live, query-able view of a third-party multiplayer
server directory together with a rolling 24 hour player-count history
per server.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable records shared by every layer
   - ServerRecord, Snapshot, HistorySample, FetchResult, RefreshOutcome

2. INGESTION (ingestion/)
   - Responsibility: one HTTP call per refresh to the upstream directory
   - Outputs: FetchResult (failures are data, never exceptions)
   - MUST NOT: retry, cache, or touch shared state

3. STORAGE (storage/)
   - SnapshotStore: atomic publish of immutable snapshots
   - HistoryTracker: append-only, time-bounded samples per server

4. ENGINE (engine.py, scheduler.py)
   - Reconciler: fetch -> build snapshot -> record history -> evict -> publish
   - Scheduler: fixed-period ticks, at most one refresh in flight

5. QUERY (query/)
   - Read-only filter and sort over the current snapshot

6. API (api/)
   - Read-only JSON surface for the presentation layer

CONSTRAINTS ENFORCED:
=====================
- The Reconciler is the only writer of snapshots and history
- Readers never take a lock and never observe a partial refresh
- Upstream failures leave the previous snapshot serving
"""

__version__ = "0.1.0"

from .config import TrackerConfig, ConfigError
from .engine import ServerDirectory, Reconciler
from .scheduler import Scheduler
from .query import QueryEngine, ServerFilter, SortSpec, SortKey, TagMatch

__all__ = [
    "TrackerConfig",
    "ConfigError",
    "ServerDirectory",
    "Reconciler",
    "Scheduler",
    "QueryEngine",
    "ServerFilter",
    "SortSpec",
    "SortKey",
    "TagMatch",
]
