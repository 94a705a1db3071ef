"""
Directory Record Contracts

Immutable data structures for the server directory and its history.

BOUNDARY: every layer
All upstream data enters the system as ServerRecord and leaves it inside
a Snapshot or as HistorySample tuples.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple


# =============================================================================
# SERVER RECORDS
# =============================================================================

@dataclass(frozen=True)
class ModInfo:
    """One entry of a server's mod list."""
    name: str
    version: str


@dataclass(frozen=True)
class ServerRecord:
    """
    One upstream game-server entry.

    player_count <= max_players is guaranteed by upstream only; nothing
    here checks it.
    """
    id: str
    name: str
    game_version: str
    has_password: bool
    player_count: int
    max_players: int

    description: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)
    is_dedicated: bool = False
    mod_list: Tuple[ModInfo, ...] = field(default_factory=tuple)

    # Upstream extras
    players: Tuple[str, ...] = field(default_factory=tuple)
    mod_count: int = 0
    has_mods: bool = False
    build_version: int = 0
    game_time_elapsed: int = 0
    host_address: Optional[str] = None
    server_id: Optional[str] = None

    @property
    def is_full(self) -> bool:
        return self.max_players > 0 and self.player_count >= self.max_players


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True, eq=False)
class Snapshot:
    """
    Complete, immutable view of the directory at one point in time.

    A Snapshot is never mutated once built. The records mapping is a
    read-only proxy over a private dict owned by this instance.
    """
    captured_at: Optional[datetime]
    generation: int
    records: Mapping[str, ServerRecord] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        records: Iterable[ServerRecord],
        captured_at: datetime,
        generation: int
    ) -> 'Snapshot':
        """Build from records; a repeated id keeps the last record seen."""
        by_id: Dict[str, ServerRecord] = {}
        for record in records:
            by_id[record.id] = record
        return cls(
            captured_at=captured_at,
            generation=generation,
            records=MappingProxyType(by_id)
        )

    @classmethod
    def empty(cls) -> 'Snapshot':
        """Generation 0: nothing fetched yet."""
        return cls(captured_at=None, generation=0)

    def get(self, server_id: str) -> Optional[ServerRecord]:
        return self.records.get(server_id)

    def ids(self) -> FrozenSet[str]:
        return frozenset(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, server_id: object) -> bool:
        return server_id in self.records

    def __iter__(self) -> Iterator[ServerRecord]:
        return iter(self.records.values())

    def __repr__(self) -> str:
        return (
            f"Snapshot(generation={self.generation}, "
            f"captured_at={self.captured_at}, servers={len(self.records)})"
        )


# =============================================================================
# HISTORY
# =============================================================================

@dataclass(frozen=True)
class HistorySample:
    """One player-count observation for one server."""
    server_id: str
    timestamp: datetime
    player_count: int


@dataclass(frozen=True)
class HistorySummary:
    """
    Chart-ready aggregation of a server's recent history.

    buckets holds one integer average per bucket, oldest first. Buckets
    with no samples are 0.
    """
    server_id: str
    window_start: datetime
    window_end: datetime
    sample_count: int
    min_players: int
    max_players: int
    avg_players: float
    buckets: Tuple[int, ...]

    @property
    def bucket_width(self) -> timedelta:
        if not self.buckets:
            return self.window_end - self.window_start
        return (self.window_end - self.window_start) / len(self.buckets)
