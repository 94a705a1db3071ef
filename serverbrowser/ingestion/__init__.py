"""
Ingestion Layer

RESPONSIBILITY: One call to the upstream directory per refresh
ALLOWED INPUTS: TrackerConfig (endpoint, credentials, timeout)
OUTPUTS: FetchResult / DetailsResult

WHAT THIS LAYER MUST NOT DO:
============================
- Retry failed calls
- Write snapshots or history
- Raise on upstream failures
"""

from .fetcher import UpstreamClient
from .parser import parse_directory, parse_server, parse_details, parse_game_time

__all__ = [
    "UpstreamClient",
    "parse_directory",
    "parse_server",
    "parse_details",
    "parse_game_time",
]
