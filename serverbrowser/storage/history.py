"""
History Tracker

Append-only, time-bounded player-count series, one per server id.

GUARANTEES:
===========
1. Per server, timestamps are strictly increasing - always, including
   right after eviction
2. A sample that does not advance the series is dropped, never reordered
3. Eviction is idempotent and removes empty series entirely
4. Readers never lock: each series is an immutable tuple swapped in whole
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional, Tuple
import logging
import threading

from ..contracts.base import require_aware
from ..contracts.records import HistorySample, HistorySummary

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_WINDOW = timedelta(hours=24)
DEFAULT_SUMMARY_BUCKETS = 24


class HistoryTracker:
    """
    Per-server player-count history.

    Only the Reconciler writes (record, evict_older_than). Everything else
    reads (series_for, summarize, latest, ...).
    """

    def __init__(self):
        self._series: Dict[str, Tuple[HistorySample, ...]] = {}
        self._write_lock = threading.Lock()

    # =========================================================================
    # WRITE INTERFACE
    # =========================================================================

    def record(self, server_id: str, timestamp: datetime, player_count: int) -> bool:
        """
        Append a sample. Returns False (and appends nothing) when the
        timestamp is not strictly after the last sample for this server.
        """
        require_aware(timestamp)
        sample = HistorySample(
            server_id=server_id,
            timestamp=timestamp,
            player_count=player_count
        )
        with self._write_lock:
            existing = self._series.get(server_id, ())
            if existing and timestamp <= existing[-1].timestamp:
                logger.debug(
                    "rejected sample for %s at %s: last sample is at %s",
                    server_id, timestamp.isoformat(), existing[-1].timestamp.isoformat()
                )
                return False
            self._series[server_id] = existing + (sample,)
        return True

    def evict_older_than(self, cutoff: datetime) -> int:
        """
        Drop every sample with timestamp < cutoff. Returns how many were
        dropped. Servers left with no samples stop being tracked.
        """
        require_aware(cutoff, "cutoff")
        removed = 0
        with self._write_lock:
            kept: Dict[str, Tuple[HistorySample, ...]] = {}
            for server_id, samples in self._series.items():
                start = _first_at_or_after(samples, cutoff)
                removed += start
                if start < len(samples):
                    kept[server_id] = samples[start:] if start else samples
            self._series = kept
        if removed:
            logger.debug("evicted %d samples older than %s", removed, cutoff.isoformat())
        return removed

    # =========================================================================
    # READ INTERFACE
    # =========================================================================

    def series_for(
        self,
        server_id: str,
        window: Optional[timedelta] = None,
        now: Optional[datetime] = None
    ) -> Tuple[HistorySample, ...]:
        """
        Samples for one server, oldest first.

        With a window, only samples at or after (now - window) are returned;
        `now` defaults to the server's latest sample. Unknown ids give ().
        """
        samples = self._series.get(server_id, ())
        if window is None or not samples:
            return samples
        reference = now if now is not None else samples[-1].timestamp
        start = _first_at_or_after(samples, reference - window)
        return samples[start:]

    def summarize(
        self,
        server_id: str,
        window: timedelta = DEFAULT_SUMMARY_WINDOW,
        now: Optional[datetime] = None,
        buckets: int = DEFAULT_SUMMARY_BUCKETS
    ) -> Optional[HistorySummary]:
        """
        Min / max / average over the window plus per-bucket averages for
        charting. None when the server has no samples in the window.
        """
        if buckets < 1:
            raise ValueError("buckets must be at least 1")
        samples = self._series.get(server_id, ())
        if not samples:
            return None
        window_end = now if now is not None else samples[-1].timestamp
        window_start = window_end - window
        in_window = [
            s for s in samples[_first_at_or_after(samples, window_start):]
            if s.timestamp <= window_end
        ]
        if not in_window:
            return None

        width = window / buckets
        totals = [0] * buckets
        counts = [0] * buckets
        for sample in in_window:
            index = min(int((sample.timestamp - window_start) / width), buckets - 1)
            totals[index] += sample.player_count
            counts[index] += 1

        values = [s.player_count for s in in_window]
        return HistorySummary(
            server_id=server_id,
            window_start=window_start,
            window_end=window_end,
            sample_count=len(in_window),
            min_players=min(values),
            max_players=max(values),
            avg_players=sum(values) / len(values),
            buckets=tuple(
                total // count if count else 0
                for total, count in zip(totals, counts)
            )
        )

    def latest(self, server_id: str) -> Optional[HistorySample]:
        samples = self._series.get(server_id, ())
        return samples[-1] if samples else None

    def tracked_ids(self) -> FrozenSet[str]:
        return frozenset(self._series)

    def sample_count(self, server_id: Optional[str] = None) -> int:
        if server_id is not None:
            return len(self._series.get(server_id, ()))
        return sum(len(samples) for samples in list(self._series.values()))

    def __len__(self) -> int:
        return len(self._series)


def _first_at_or_after(samples: Tuple[HistorySample, ...], cutoff: datetime) -> int:
    """Index of the first sample with timestamp >= cutoff (len if none)."""
    lo, hi = 0, len(samples)
    while lo < hi:
        mid = (lo + hi) // 2
        if samples[mid].timestamp < cutoff:
            lo = mid + 1
        else:
            hi = mid
    return lo
