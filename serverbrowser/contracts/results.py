"""
Result Contracts

Outcomes of upstream calls and refresh cycles.

Failed fetches are FIRST-CLASS outputs, not exceptions: the ingestion
layer always returns one of these, and the engine decides what to do.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from .base import FetchStatus
from .records import ModInfo, ServerRecord


# =============================================================================
# FETCH RESULTS
# =============================================================================

@dataclass(frozen=True)
class FetchResult:
    """Result of one directory fetch (success or failure)."""
    status: FetchStatus
    attempted_at: datetime
    completed_at: datetime

    # On success
    records: Tuple[ServerRecord, ...] = field(default_factory=tuple)

    # On failure
    error_message: Optional[str] = None
    http_status: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == FetchStatus.SUCCESS

    @property
    def duration_ms(self) -> float:
        return (self.completed_at - self.attempted_at).total_seconds() * 1000


@dataclass(frozen=True)
class ServerDetails:
    """Per-server extras only the details endpoint returns."""
    server_id: str
    name: str
    description: str
    players: Tuple[str, ...]
    mods: Tuple[ModInfo, ...]
    game_version: str
    host_address: Optional[str] = None


@dataclass(frozen=True)
class DetailsResult:
    """Result of one details lookup."""
    status: FetchStatus
    server_id: str
    details: Optional[ServerDetails] = None
    error_message: Optional[str] = None
    http_status: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == FetchStatus.SUCCESS


# =============================================================================
# REFRESH RESULTS
# =============================================================================

@dataclass(frozen=True)
class RefreshOutcome:
    """
    Result of one refresh cycle.

    published_generation is None whenever nothing was published, either
    because the fetch failed or because the cycle aborted before publish.
    """
    started_at: datetime
    completed_at: datetime
    fetch: FetchResult
    published_generation: Optional[int] = None
    recorded_samples: int = 0
    rejected_samples: int = 0
    evicted_samples: int = 0
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.published_generation is not None

    @property
    def server_count(self) -> int:
        return len(self.fetch.records) if self.success else 0


@dataclass(frozen=True)
class RefreshStatus:
    """What the presentation layer may show about data freshness."""
    last_attempt_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_kind: Optional[FetchStatus] = None
    consecutive_failures: int = 0
    total_refreshes: int = 0
    skipped_ticks: int = 0

    @property
    def is_stale(self) -> bool:
        return self.consecutive_failures > 0
