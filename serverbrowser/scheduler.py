"""
Refresh Scheduler

Triggers the refresh job once at startup and then on a fixed interval.

GUARANTEES:
===========
1. At most one job runs at a time; a tick that finds one running is
   skipped and counted, never queued
2. A failing job (result or exception) never stops later ticks
3. stop() lets an in-flight job finish
"""

from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional
import logging
import threading

from .observability import metrics

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Fixed-interval ticker around a single-worker executor.

    The ticker is a daemon thread waiting on an Event, so stop() wakes it
    immediately instead of waiting out the interval.
    """

    def __init__(
        self,
        job: Callable[[], Any],
        interval_seconds: float = 60.0,
        name: str = "refresh"
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._job = job
        self._interval = interval_seconds
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-worker")
        self._in_progress = threading.Lock()
        self._stopping = threading.Event()
        self._ticker: Optional[threading.Thread] = None
        self._counter_lock = threading.Lock()
        self._skipped = 0

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, run_immediately: bool = True) -> None:
        """Start ticking. The first tick happens right away unless told otherwise."""
        if self._ticker is not None:
            raise RuntimeError(f"{self._name} scheduler already started")
        self._ticker = threading.Thread(
            target=self._loop,
            args=(run_immediately,),
            name=f"{self._name}-ticker",
            daemon=True
        )
        self._ticker.start()
        logger.debug("%s scheduler started, interval %.1fs", self._name, self._interval)

    def stop(self, wait: bool = True) -> None:
        """Stop ticking. With wait=True, block until the in-flight job finishes."""
        self._stopping.set()
        if self._ticker is not None and self._ticker is not threading.current_thread():
            self._ticker.join()
        self._executor.shutdown(wait=wait)
        logger.debug("%s scheduler stopped", self._name)

    def __enter__(self) -> 'Scheduler':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # =========================================================================
    # TICKING
    # =========================================================================

    def tick(self) -> Optional[Future]:
        """
        Submit the job unless one is already running.

        Returns the job's Future, or None when the tick was skipped or the
        scheduler is stopping.
        """
        if self._stopping.is_set():
            return None
        if not self._in_progress.acquire(blocking=False):
            with self._counter_lock:
                self._skipped += 1
            metrics.refresh_skipped.inc()
            logger.warning("previous %s still running, skipping this tick", self._name)
            return None
        try:
            return self._executor.submit(self._run)
        except RuntimeError:
            # executor already shut down
            self._in_progress.release()
            return None

    @property
    def skipped_ticks(self) -> int:
        return self._skipped

    @property
    def running(self) -> bool:
        return self._ticker is not None and self._ticker.is_alive()

    def _loop(self, run_immediately: bool) -> None:
        if run_immediately:
            self.tick()
        while not self._stopping.wait(self._interval):
            self.tick()

    def _run(self) -> Any:
        try:
            return self._job()
        except Exception:
            logger.exception("%s failed unexpectedly; next tick will retry", self._name)
            return None
        finally:
            self._in_progress.release()
