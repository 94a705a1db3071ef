"""
Test Fixtures

Fixed timestamps, upstream payload builders and a scriptable upstream.
All fixtures are explicit - no wall clock, no network.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx

from serverbrowser.config import TrackerConfig
from serverbrowser.contracts.records import ServerRecord


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

EPOCH = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 1, 1, 10, 1, 0, tzinfo=timezone.utc)
T3 = datetime(2026, 1, 1, 10, 2, 0, tzinfo=timezone.utc)

BASE_URL = "https://upstream.test"
TEST_CONFIG = TrackerConfig(
    base_url=BASE_URL,
    username="tester",
    token="secret-token",
    refresh_interval_seconds=60.0,
    retention_hours=24.0,
    request_timeout_seconds=1.0,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T1):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =============================================================================
# PAYLOAD BUILDERS
# =============================================================================

def make_entry(
    game_id: int,
    name: Optional[str] = None,
    players: int = 0,
    max_players: int = 10,
    version: str = "1.1.100",
    has_password: bool = False,
    tags: Iterable[str] = (),
    **extra: Any
) -> Dict[str, Any]:
    """One get-games entry as the upstream sends it."""
    entry = {
        "game_id": game_id,
        "name": name if name is not None else f"server {game_id}",
        "description": "",
        "max_players": max_players,
        "players": [f"player{i}" for i in range(players)],
        "application_version": {
            "game_version": version,
            "build_version": 60000,
            "build_mode": "headless",
            "platform": "linux64",
        },
        "game_time_elapsed": 120,
        "has_password": has_password,
        "tags": list(tags),
        "mod_count": 0,
        "host_address": f"10.0.0.{game_id % 250}:34197",
        "has_mods": False,
        "headless_server": True,
    }
    entry.update(extra)
    return entry


def make_record(
    server_id: str,
    players: int = 0,
    name: Optional[str] = None,
    max_players: int = 10,
    version: str = "1.1.100",
    has_password: bool = False,
    tags: Iterable[str] = (),
    **extra: Any
) -> ServerRecord:
    return ServerRecord(
        id=server_id,
        name=name if name is not None else f"server {server_id}",
        game_version=version,
        has_password=has_password,
        player_count=players,
        max_players=max_players,
        tags=frozenset(tags),
        **extra
    )


# =============================================================================
# SCRIPTABLE UPSTREAM
# =============================================================================

class FakeUpstream:
    """
    httpx MockTransport handler standing in for the matchmaking API.

    Set `entries` for the next directory listing, or `status_code` /
    `error` / `body` to make it fail.
    """

    def __init__(self, entries: Optional[List[Dict[str, Any]]] = None):
        self.entries = entries or []
        self.status_code = 200
        self.error: Optional[Exception] = None
        self.body: Optional[bytes] = None
        self.details: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.url.path.startswith("/get-game-details/"):
            server_id = request.url.path.rsplit("/", 1)[-1]
            if server_id not in self.details:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=self.details[server_id])
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.entries)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def serve(self, *entries: Dict[str, Any]) -> None:
        self.entries = list(entries)
        self.status_code = 200
        self.error = None
        self.body = None

    def fail_with(self, status_code: int) -> None:
        self.status_code = status_code
        self.body = b'{"message": "upstream says no"}'
