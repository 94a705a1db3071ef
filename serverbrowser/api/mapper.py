"""
API Mapper
==========

Transforms internal contracts into JSON-ready dicts for the presentation
layer. Nothing here reads state; callers pass in what they already hold.
"""
from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime

from ..contracts.records import HistorySample, HistorySummary, ServerRecord
from ..contracts.results import RefreshStatus, ServerDetails


def iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace('+00:00', 'Z')


def map_server(record: ServerRecord) -> Dict[str, Any]:
    """Map a ServerRecord to the server DTO."""
    return {
        "id": record.id,
        "name": record.name,
        "description": record.description,
        "tags": sorted(record.tags),
        "game_version": record.game_version,
        "build_version": record.build_version,
        "has_password": record.has_password,
        "is_dedicated": record.is_dedicated,
        "player_count": record.player_count,
        "max_players": record.max_players,
        "players": list(record.players),
        "mod_count": record.mod_count,
        "has_mods": record.has_mods,
        "mods": [{"name": m.name, "version": m.version} for m in record.mod_list],
        "game_time_elapsed": record.game_time_elapsed,
        "host_address": record.host_address,
    }


def map_servers(records: Iterable[ServerRecord]) -> List[Dict[str, Any]]:
    return [map_server(r) for r in records]


def map_history(samples: Iterable[HistorySample]) -> List[Dict[str, Any]]:
    return [
        {"timestamp": iso(s.timestamp), "player_count": s.player_count}
        for s in samples
    ]


def map_summary(summary: Optional[HistorySummary]) -> Optional[Dict[str, Any]]:
    """Chart data: overall stats plus one average per bucket, oldest first."""
    if summary is None:
        return None
    width = summary.bucket_width
    return {
        "window_start": iso(summary.window_start),
        "window_end": iso(summary.window_end),
        "samples": summary.sample_count,
        "min": summary.min_players,
        "max": summary.max_players,
        "avg": round(summary.avg_players, 1),
        "buckets": [
            {
                "start": iso(summary.window_start + width * i),
                "avg_players": value,
            }
            for i, value in enumerate(summary.buckets)
        ],
    }


def map_details(details: ServerDetails) -> Dict[str, Any]:
    return {
        "id": details.server_id,
        "name": details.name,
        "description": details.description,
        "game_version": details.game_version,
        "host_address": details.host_address,
        "players": list(details.players),
        "mods": [{"name": m.name, "version": m.version} for m in details.mods],
    }


def map_status(status: RefreshStatus) -> Dict[str, Any]:
    """Freshness banner data: when the cache last updated and why it might not have."""
    return {
        "last_attempt_at": iso(status.last_attempt_at),
        "last_success_at": iso(status.last_success_at),
        "last_error": status.last_error,
        "last_error_kind": status.last_error_kind.value if status.last_error_kind else None,
        "consecutive_failures": status.consecutive_failures,
        "total_refreshes": status.total_refreshes,
        "skipped_ticks": status.skipped_ticks,
        "stale": status.is_stale,
    }
