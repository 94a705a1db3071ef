"""
Base Contracts and Shared Types

Status enums and time helpers used across all layers.
"""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum


# =============================================================================
# FETCH STATUS
# =============================================================================

class FetchStatus(Enum):
    """
    Outcome classification of one upstream call.

    Every non-SUCCESS member is a FetchError kind. AUTH_REJECTED is the only
    kind that points at a configuration problem rather than a transient one.
    """
    SUCCESS = "success"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    AUTH_REJECTED = "auth_rejected"
    MALFORMED = "upstream_malformed"

    @property
    def is_error(self) -> bool:
        return self is not FetchStatus.SUCCESS


class MalformedPayload(ValueError):
    """Raised by the parser when a response does not have the expected shape."""


# =============================================================================
# TIME HELPERS
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def require_aware(value: datetime, name: str = "timestamp") -> datetime:
    """Reject naive datetimes; comparisons between naive and aware values raise."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError(f"{name} must be timezone-aware, got naive {value!r}")
    return value
