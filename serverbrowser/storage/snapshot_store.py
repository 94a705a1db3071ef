"""
Snapshot Store

Holds the one current Snapshot and replaces it atomically.

GUARANTEES:
===========
1. Readers never lock: current() is a single attribute read
2. publish() swaps one reference to a fully built, immutable Snapshot,
   so a reader sees the old generation or the new one, never a mix
3. Generations only move forward
"""

from __future__ import annotations
from typing import Optional
import logging
import threading

from ..contracts.records import ServerRecord, Snapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    Single-writer, multi-reader holder of the current Snapshot.

    The write lock only orders concurrent publishers against each other;
    readers never touch it.
    """

    def __init__(self, initial: Optional[Snapshot] = None):
        self._current: Snapshot = initial or Snapshot.empty()
        self._write_lock = threading.Lock()

    def current(self) -> Snapshot:
        """The most recently published Snapshot."""
        return self._current

    def publish(self, snapshot: Snapshot) -> int:
        """
        Make `snapshot` current. Returns its generation.

        Raises ValueError if the generation does not advance, which would
        mean two writers raced or a stale snapshot was re-published.
        """
        with self._write_lock:
            previous = self._current
            if snapshot.generation <= previous.generation:
                raise ValueError(
                    f"snapshot generation {snapshot.generation} does not advance "
                    f"past {previous.generation}"
                )
            self._current = snapshot
        logger.debug(
            "published generation %d (%d servers, was %d)",
            snapshot.generation, len(snapshot), len(previous)
        )
        return snapshot.generation

    def next_generation(self) -> int:
        return self._current.generation + 1

    def get(self, server_id: str) -> Optional[ServerRecord]:
        return self._current.get(server_id)

    @property
    def generation(self) -> int:
        return self._current.generation

    @property
    def has_data(self) -> bool:
        return self._current.generation > 0
