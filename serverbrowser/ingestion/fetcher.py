"""
Upstream Directory Client

Fetches the full server directory from the matchmaking API.

PRINCIPLES:
===========
1. One outbound call per fetch, bounded by a timeout
2. No retries - the scheduler owns the retry policy (the next tick)
3. Failed fetches are first-class results, never exceptions
4. Stateless between invocations
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote
import logging

import httpx

from ..config import TrackerConfig
from ..contracts.base import FetchStatus, utc_now
from ..contracts.results import DetailsResult, FetchResult
from .parser import parse_details, parse_directory

logger = logging.getLogger(__name__)

DIRECTORY_PATH = "/get-games"
DETAILS_PATH = "/get-game-details/{server_id}"

AUTH_STATUSES = (401, 403)

# MalformedPayload and JSON decode errors are ValueErrors; absurdly nested
# or oversized JSON raises the other two
PARSE_ERRORS = (ValueError, OverflowError, RecursionError)


class UpstreamClient:
    """
    Client for the upstream matchmaking directory.

    GUARANTEES:
    ===========
    1. fetch_directory() always returns a FetchResult
    2. A response that does not parse into the expected shape is MALFORMED,
       and no records from it are returned
    3. 401/403 are AUTH_REJECTED so operators can tell them apart
    """

    def __init__(
        self,
        config: TrackerConfig,
        clock: Callable[[], datetime] = utc_now,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self._config = config
        self._clock = clock
        self._transport = transport

    def fetch_directory(self) -> FetchResult:
        """Fetch and parse the complete server listing."""
        attempted_at = self._clock()
        params = {
            'username': self._config.username,
            'token': self._config.token,
        }

        try:
            with self._client() as client:
                response = client.get(DIRECTORY_PATH, params=params)
        except httpx.TimeoutException:
            return self._failure(
                FetchStatus.TIMEOUT, attempted_at,
                f"no response within {self._config.request_timeout_seconds}s"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(FetchStatus.NETWORK_ERROR, attempted_at, _describe(e))

        if response.status_code in AUTH_STATUSES:
            return self._failure(
                FetchStatus.AUTH_REJECTED, attempted_at,
                f"HTTP {response.status_code}: credentials rejected",
                http_status=response.status_code
            )
        if not response.is_success:
            return self._failure(
                FetchStatus.NETWORK_ERROR, attempted_at,
                f"HTTP {response.status_code}",
                http_status=response.status_code
            )

        try:
            records = parse_directory(response.json())
        except PARSE_ERRORS as e:
            return self._failure(
                FetchStatus.MALFORMED, attempted_at, str(e),
                http_status=response.status_code
            )

        completed_at = self._clock()
        logger.debug(
            "fetched %d servers in %.0f ms",
            len(records),
            (completed_at - attempted_at).total_seconds() * 1000
        )
        return FetchResult(
            status=FetchStatus.SUCCESS,
            attempted_at=attempted_at,
            completed_at=completed_at,
            records=tuple(records),
            http_status=response.status_code
        )

    def fetch_details(self, server_id: str) -> DetailsResult:
        """Fetch mods and players for one server (no credentials needed)."""
        try:
            with self._client() as client:
                path = DETAILS_PATH.format(server_id=quote(server_id, safe=""))
                response = client.get(path)
        except httpx.TimeoutException:
            return DetailsResult(
                status=FetchStatus.TIMEOUT, server_id=server_id,
                error_message="details request timed out"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return DetailsResult(
                status=FetchStatus.NETWORK_ERROR, server_id=server_id,
                error_message=_describe(e)
            )

        if response.status_code in AUTH_STATUSES:
            status = FetchStatus.AUTH_REJECTED
        elif not response.is_success:
            status = FetchStatus.NETWORK_ERROR
        else:
            try:
                details = parse_details(response.json())
            except PARSE_ERRORS as e:
                return DetailsResult(
                    status=FetchStatus.MALFORMED, server_id=server_id,
                    error_message=str(e), http_status=response.status_code
                )
            return DetailsResult(
                status=FetchStatus.SUCCESS, server_id=server_id,
                details=details, http_status=response.status_code
            )
        return DetailsResult(
            status=status, server_id=server_id,
            error_message=f"HTTP {response.status_code}",
            http_status=response.status_code
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._config.base_url,
            timeout=self._config.request_timeout_seconds,
            headers={'User-Agent': self._config.user_agent},
            follow_redirects=True,
            transport=self._transport
        )

    def _failure(
        self,
        status: FetchStatus,
        attempted_at: datetime,
        message: str,
        http_status: Optional[int] = None
    ) -> FetchResult:
        return FetchResult(
            status=status,
            attempted_at=attempted_at,
            completed_at=self._clock(),
            error_message=message,
            http_status=http_status
        )


def _describe(error: Exception) -> str:
    # Never include the request URL: it carries the token
    return f"{type(error).__name__}: {error}" if str(error) else type(error).__name__
