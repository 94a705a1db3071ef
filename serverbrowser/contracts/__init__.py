"""
Contracts Module

Immutable records exchanged between the ingestion, storage, engine and
query layers. No layer passes mutable state to another; everything that
crosses a boundary is a frozen dataclass or a tuple of them.

DESIGN PRINCIPLES:
==================
1. All contract types are frozen dataclasses
2. Expected failures are data (FetchResult.status), not exceptions
3. All timestamps are timezone-aware UTC datetimes
"""
