"""
Query Interface

RESPONSIBILITY: Read-only filter and sort over the current snapshot
ALLOWED INPUTS: ServerFilter, SortSpec, paging
OUTPUTS: Ordered lists of ServerRecord

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate any state
- Block the Reconciler (reads one Snapshot reference, no locks)
- Mix records from two snapshot generations in one result
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple
import re

from ..contracts.records import ServerRecord, Snapshot
from ..storage import SnapshotStore


# =============================================================================
# FILTERS
# =============================================================================

class TagMatch(str, Enum):
    """How a tag set is matched against a server's tags."""
    ALL = "all"
    ANY = "any"


@dataclass(frozen=True)
class ServerFilter:
    """
    Independently combinable predicates; every one that is set must hold.

    A tag filter needs an explicit tag_mode - there is no default between
    all-of and any-of.
    """
    text: Optional[str] = None
    tags: FrozenSet[str] = field(default_factory=frozenset)
    tag_mode: Optional[TagMatch] = None
    game_version: Optional[str] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    has_password: Optional[bool] = None
    is_dedicated: Optional[bool] = None
    has_players: Optional[bool] = None
    min_mods: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'tags', frozenset(self.tags))
        if self.tags and self.tag_mode is None:
            raise ValueError("tag_mode (TagMatch.ALL or TagMatch.ANY) is required with tags")
        if (
            self.min_players is not None
            and self.max_players is not None
            and self.min_players > self.max_players
        ):
            raise ValueError(
                f"min_players {self.min_players} is greater than max_players {self.max_players}"
            )

    def matches(self, record: ServerRecord) -> bool:
        if self.text:
            needle = self.text.casefold()
            if (
                needle not in record.name.casefold()
                and needle not in record.description.casefold()
            ):
                return False

        if self.tags:
            if self.tag_mode is TagMatch.ALL and not self.tags <= record.tags:
                return False
            if self.tag_mode is TagMatch.ANY and not self.tags & record.tags:
                return False

        if self.game_version is not None and record.game_version != self.game_version:
            return False

        if self.min_players is not None and record.player_count < self.min_players:
            return False
        if self.max_players is not None and record.player_count > self.max_players:
            return False

        if self.has_password is not None and record.has_password != self.has_password:
            return False
        if self.is_dedicated is not None and record.is_dedicated != self.is_dedicated:
            return False

        if self.has_players is not None and (record.player_count > 0) != self.has_players:
            return False
        if self.min_mods is not None and record.mod_count < self.min_mods:
            return False

        return True


# =============================================================================
# SORTING
# =============================================================================

class SortKey(str, Enum):
    PLAYERS = "players"
    NAME = "name"
    MAX_PLAYERS = "max_players"
    MOD_COUNT = "mods"
    GAME_TIME = "game_time"
    BUILD_VERSION = "build"


_SORT_FIELDS: Dict[SortKey, Callable[[ServerRecord], object]] = {
    SortKey.PLAYERS: lambda r: r.player_count,
    SortKey.NAME: lambda r: r.name.casefold(),
    SortKey.MAX_PLAYERS: lambda r: r.max_players,
    SortKey.MOD_COUNT: lambda r: r.mod_count,
    SortKey.GAME_TIME: lambda r: r.game_time_elapsed,
    SortKey.BUILD_VERSION: lambda r: r.build_version,
}


@dataclass(frozen=True)
class SortSpec:
    key: SortKey = SortKey.PLAYERS
    descending: bool = True


def id_sort_key(server_id: str) -> Tuple[int, int, str]:
    """Numeric ids in numeric order, then anything else lexicographically."""
    if server_id.isascii() and server_id.isdigit():
        return (0, int(server_id), "")
    return (1, 0, server_id)


def sort_records(records: Iterable[ServerRecord], sort: SortSpec) -> List[ServerRecord]:
    """
    Sort by the requested key; ties always fall back to id ascending,
    whatever the direction.
    """
    by_id = sorted(records, key=lambda r: id_sort_key(r.id))
    # list.sort is stable, also with reverse=True
    by_id.sort(key=_SORT_FIELDS[sort.key], reverse=sort.descending)
    return by_id


# =============================================================================
# QUERY ENGINE
# =============================================================================

@dataclass(frozen=True)
class SnapshotInfo:
    generation: int
    captured_at: Optional[datetime]
    server_count: int


class QueryEngine:
    """
    Read-only access to the current snapshot.

    Every call reads the store's current Snapshot exactly once, so one
    result is always consistent with exactly one generation.
    """

    def __init__(self, store: SnapshotStore):
        self._store = store

    def query(
        self,
        filter: Optional[ServerFilter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[ServerRecord]:
        return self.query_snapshot(self._store.current(), filter, sort, limit, offset)

    def query_with_total(
        self,
        filter: Optional[ServerFilter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        snapshot: Optional[Snapshot] = None
    ) -> Tuple[List[ServerRecord], int, SnapshotInfo]:
        """
        Like query(), also returning the unpaged match count and which
        snapshot answered. Pass `snapshot` to answer from one already held.
        """
        if snapshot is None:
            snapshot = self._store.current()
        matched = self.query_snapshot(snapshot, filter, sort)
        return _page(matched, limit, offset), len(matched), _info(snapshot)

    @staticmethod
    def query_snapshot(
        snapshot: Snapshot,
        filter: Optional[ServerFilter] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[ServerRecord]:
        """Filter and sort one given snapshot."""
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        if offset < 0:
            raise ValueError("offset must not be negative")
        records: Iterable[ServerRecord] = snapshot
        if filter is not None:
            records = [r for r in records if filter.matches(r)]
        return _page(sort_records(records, sort or SortSpec()), limit, offset)

    def current(self) -> Snapshot:
        """Hold the returned snapshot to answer several calls from one generation."""
        return self._store.current()

    def get(self, server_id: str) -> Optional[ServerRecord]:
        return self._store.get(server_id)

    def versions(self, snapshot: Optional[Snapshot] = None) -> List[str]:
        """Distinct game versions, newest first."""
        if snapshot is None:
            snapshot = self._store.current()
        found = {r.game_version for r in snapshot if r.game_version}
        return sorted(found, key=_version_key, reverse=True)

    def latest_version(self, snapshot: Optional[Snapshot] = None) -> Optional[str]:
        versions = self.versions(snapshot)
        return versions[0] if versions else None

    def tags(self, snapshot: Optional[Snapshot] = None) -> List[str]:
        """Distinct tags across all servers, sorted."""
        if snapshot is None:
            snapshot = self._store.current()
        found = set()
        for record in snapshot:
            found.update(record.tags)
        return sorted(found, key=lambda t: (t.casefold(), t))

    def snapshot_info(self, snapshot: Optional[Snapshot] = None) -> SnapshotInfo:
        return _info(self._store.current() if snapshot is None else snapshot)


def _page(records: List[ServerRecord], limit: Optional[int], offset: int) -> List[ServerRecord]:
    if limit is None:
        return records[offset:]
    return records[offset:offset + limit]


def _info(snapshot: Snapshot) -> SnapshotInfo:
    return SnapshotInfo(
        generation=snapshot.generation,
        captured_at=snapshot.captured_at,
        server_count=len(snapshot)
    )


def _version_key(version: str) -> Tuple[Tuple[int, ...], str]:
    return tuple(int(part) for part in re.findall(r'\d+', version)), version
