"""
Engine Orchestration Module

The Reconciler drives one refresh cycle; ServerDirectory wires every
component together and owns them.

DESIGN PRINCIPLES:
==================
1. Components communicate ONLY through contracts
2. Publish is the LAST step of a cycle: readers see a complete snapshot
   or the previous one, never a partial one
3. Upstream failures stop here; nothing reaches readers
4. No hidden singletons: the composition root hands out references
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple
import logging
import threading

import httpx

from .config import TrackerConfig
from .contracts.base import FetchStatus, utc_now
from .contracts.records import HistorySample, HistorySummary, Snapshot
from .contracts.results import DetailsResult, FetchResult, RefreshOutcome, RefreshStatus
from .ingestion import UpstreamClient
from .observability import metrics
from .query import QueryEngine
from .scheduler import Scheduler
from .storage import HistoryTracker, SnapshotStore

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Runs refresh cycles: fetch, build, record history, evict, publish.

    refresh() never runs concurrently with itself. A call made while
    another cycle is in flight returns None immediately.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        snapshots: SnapshotStore,
        history: HistoryTracker,
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now
    ):
        self._upstream = upstream
        self._snapshots = snapshots
        self._history = history
        self._retention = retention
        self._clock = clock
        self._guard = threading.Lock()
        self._status = RefreshStatus()

    def refresh(self) -> Optional[RefreshOutcome]:
        """Run one cycle. Returns None if a cycle was already running."""
        if not self._guard.acquire(blocking=False):
            logger.info("refresh already in progress, not starting another")
            return None
        try:
            with metrics.refresh_duration.time():
                outcome = self._run_cycle()
            self._update_status(outcome)
        finally:
            self._guard.release()
        return outcome

    def status(self) -> RefreshStatus:
        return self._status

    @property
    def running(self) -> bool:
        return self._guard.locked()

    # =========================================================================
    # CYCLE
    # =========================================================================

    def _run_cycle(self) -> RefreshOutcome:
        started_at = self._clock()
        try:
            fetch = self._upstream.fetch_directory()
        except Exception as e:
            logger.exception("upstream client raised instead of returning a result")
            fetch = FetchResult(
                status=FetchStatus.NETWORK_ERROR,
                attempted_at=started_at,
                completed_at=self._clock(),
                error_message=f"{type(e).__name__}: {e}"
            )

        if not fetch.success:
            self._report_fetch_failure(fetch)
            metrics.refresh_total.labels(outcome='fetch_failed').inc()
            return RefreshOutcome(
                started_at=started_at,
                completed_at=self._clock(),
                fetch=fetch,
                error_message=fetch.error_message
            )

        try:
            return self._apply(started_at, fetch)
        except Exception as e:
            logger.exception("refresh aborted before publish")
            metrics.refresh_total.labels(outcome='aborted').inc()
            return RefreshOutcome(
                started_at=started_at,
                completed_at=self._clock(),
                fetch=fetch,
                error_message=f"refresh aborted: {type(e).__name__}: {e}"
            )

    def _apply(self, started_at: datetime, fetch: FetchResult) -> RefreshOutcome:
        timestamp = fetch.completed_at

        # Step 2: build the complete next snapshot off to the side
        snapshot = Snapshot.build(
            fetch.records,
            captured_at=timestamp,
            generation=self._snapshots.next_generation()
        )
        duplicates = len(fetch.records) - len(snapshot)
        if duplicates:
            logger.warning(
                "upstream listed %d duplicate server ids; kept the last entry of each",
                duplicates
            )

        # Step 3: one sample per server
        recorded = rejected = 0
        for record in snapshot:
            if self._history.record(record.id, timestamp, record.player_count):
                recorded += 1
            else:
                rejected += 1
        if rejected:
            metrics.samples_rejected.inc(rejected)
            logger.warning(
                "dropped %d history samples at %s (timestamp not after the last sample)",
                rejected, timestamp.isoformat()
            )

        # Step 4: retention
        evicted = self._history.evict_older_than(timestamp - self._retention)
        if evicted:
            metrics.samples_evicted.inc(evicted)

        # Step 5: publish
        generation = self._snapshots.publish(snapshot)

        metrics.refresh_total.labels(outcome='published').inc()
        metrics.servers.set(len(snapshot))
        metrics.tracked_series.set(len(self._history))
        metrics.snapshot_generation.set(generation)
        logger.info(
            "published generation %d: %d servers, %d samples recorded, %d evicted",
            generation, len(snapshot), recorded, evicted
        )

        return RefreshOutcome(
            started_at=started_at,
            completed_at=self._clock(),
            fetch=fetch,
            published_generation=generation,
            recorded_samples=recorded,
            rejected_samples=rejected,
            evicted_samples=evicted
        )

    def _report_fetch_failure(self, fetch: FetchResult) -> None:
        metrics.fetch_failures.labels(kind=fetch.status.value).inc()
        if fetch.status == FetchStatus.AUTH_REJECTED:
            logger.error(
                "upstream rejected the credentials (%s); check UPSTREAM_USERNAME "
                "and UPSTREAM_TOKEN. Keeping the previous snapshot.",
                fetch.error_message
            )
        else:
            logger.warning(
                "fetch failed (%s): %s. Keeping the previous snapshot.",
                fetch.status.value, fetch.error_message
            )

    def _update_status(self, outcome: RefreshOutcome) -> None:
        previous = self._status
        if outcome.success:
            self._status = replace(
                previous,
                last_attempt_at=outcome.started_at,
                last_success_at=outcome.fetch.completed_at,
                last_error=None,
                last_error_kind=None,
                consecutive_failures=0,
                total_refreshes=previous.total_refreshes + 1
            )
        else:
            self._status = replace(
                previous,
                last_attempt_at=outcome.started_at,
                last_error=outcome.error_message,
                last_error_kind=None if outcome.fetch.success else outcome.fetch.status,
                consecutive_failures=previous.consecutive_failures + 1,
                total_refreshes=previous.total_refreshes + 1
            )


class ServerDirectory:
    """
    Composition root for the ingestion core.

    Builds and owns exactly one of each component. Everything that needs a
    component gets it from here.

    Usage:
        directory = ServerDirectory(TrackerConfig.load())
        directory.start()
        directory.query.query(ServerFilter(has_password=False))
        directory.stop()
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.config = config or TrackerConfig()
        self._clock = clock
        self.snapshots = SnapshotStore()
        self.history = HistoryTracker()
        self.upstream = UpstreamClient(self.config, clock=clock, transport=transport)
        self.reconciler = Reconciler(
            self.upstream,
            self.snapshots,
            self.history,
            retention=self.config.retention,
            clock=clock
        )
        self.query = QueryEngine(self.snapshots)
        self.scheduler = Scheduler(
            self.reconciler.refresh,
            interval_seconds=self.config.refresh_interval_seconds
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        logger.info(
            "starting: upstream %s, refresh every %.0fs, retention %.0fh",
            self.config.base_url,
            self.config.refresh_interval_seconds,
            self.config.retention_hours
        )
        self.scheduler.start()

    def stop(self, wait: bool = True) -> None:
        self.scheduler.stop(wait=wait)
        logger.info("stopped")

    def refresh_now(self) -> Optional[RefreshOutcome]:
        """Run one cycle on the calling thread."""
        return self.reconciler.refresh()

    def __enter__(self) -> 'ServerDirectory':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # =========================================================================
    # READ INTERFACE
    # =========================================================================

    def status(self) -> RefreshStatus:
        return replace(
            self.reconciler.status(),
            skipped_ticks=self.scheduler.skipped_ticks
        )

    def history_for(self, server_id: str, hours: float = 24.0) -> Tuple[HistorySample, ...]:
        """Samples for one server within the last `hours`, oldest first."""
        return self.history.series_for(
            server_id,
            window=timedelta(hours=hours),
            now=self._reference_time()
        )

    def summary_for(self, server_id: str, hours: float = 24.0) -> Optional[HistorySummary]:
        return self.history.summarize(
            server_id,
            window=timedelta(hours=hours),
            now=self._reference_time(),
            buckets=max(int(round(hours)), 1)
        )

    def details(self, server_id: str) -> DetailsResult:
        return self.upstream.fetch_details(server_id)

    def _reference_time(self) -> datetime:
        # Windows end at the last capture, so a stale cache still charts
        captured_at = self.snapshots.current().captured_at
        return captured_at if captured_at is not None else self._clock()
