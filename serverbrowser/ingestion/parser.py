"""
Directory Parser

Turns decoded upstream JSON into ServerRecord / ServerDetails.

PRINCIPLES:
===========
1. Required fields missing or mistyped -> MalformedPayload
2. Optional fields missing -> documented defaults
3. One bad entry rejects the whole listing (no partial snapshots)
"""

from __future__ import annotations
from typing import Any, List, Mapping, Optional, Tuple
import math

from ..contracts.base import MalformedPayload
from ..contracts.records import ModInfo, ServerRecord
from ..contracts.results import ServerDetails


def parse_directory(payload: Any) -> List[ServerRecord]:
    """Parse a get-games response body."""
    if not isinstance(payload, list):
        raise MalformedPayload(
            f"expected a list of servers, got {type(payload).__name__}"
        )
    records = []
    for index, entry in enumerate(payload):
        try:
            records.append(parse_server(entry))
        except MalformedPayload as e:
            raise MalformedPayload(f"entry {index}: {e}")
    return records


def parse_server(entry: Any) -> ServerRecord:
    """Parse one get-games entry."""
    entry = _require_mapping(entry, "server entry")
    version = _require_mapping(entry.get('application_version'), "application_version")
    players = _string_tuple(entry.get('players', []), 'players')

    return ServerRecord(
        id=_game_id(entry),
        name=_require(entry, 'name', str),
        description=_optional(entry, 'description', str, ""),
        tags=frozenset(_string_tuple(entry.get('tags', []), 'tags')),
        game_version=_require(version, 'game_version', str),
        has_password=_require(entry, 'has_password', bool),
        is_dedicated=_optional(entry, 'headless_server', bool, False),
        player_count=len(players),
        max_players=_require_int(entry, 'max_players'),
        players=players,
        mod_count=_optional_int(entry, 'mod_count', 0),
        has_mods=_optional(entry, 'has_mods', bool, False),
        build_version=_optional_int(version, 'build_version', 0),
        game_time_elapsed=parse_game_time(entry.get('game_time_elapsed', 0)),
        host_address=_optional(entry, 'host_address', str, None),
        server_id=_optional(entry, 'server_id', str, None),
    )


def parse_details(payload: Any) -> ServerDetails:
    """Parse a get-game-details response body."""
    payload = _require_mapping(payload, "details")
    version = payload.get('application_version')
    version = {} if version is None else _require_mapping(version, "application_version")
    mods = []
    for mod in payload.get('mods') or []:
        mod = _require_mapping(mod, "mod")
        mods.append(ModInfo(
            name=_require(mod, 'name', str),
            version=_require(mod, 'version', str)
        ))
    return ServerDetails(
        server_id=_game_id(payload),
        name=_require(payload, 'name', str),
        description=_optional(payload, 'description', str, ""),
        players=_string_tuple(payload.get('players', []), 'players'),
        mods=tuple(mods),
        game_version=_optional(version, 'game_version', str, ""),
        host_address=_optional(payload, 'host_address', str, None),
    )


def parse_game_time(value: Any) -> int:
    """
    Elapsed game time in minutes.

    Newer upstream versions send a number, older ones a numeric string.
    Anything unparseable, infinite or NaN counts as 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return max(int(value), 0)
    if isinstance(value, str):
        try:
            return max(int(value.strip()), 0)
        except ValueError:
            return 0
    return 0


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _game_id(entry: Mapping[str, Any]) -> str:
    value = entry.get('game_id')
    if isinstance(value, bool) or not isinstance(value, (int, str)) or value == "":
        raise MalformedPayload(f"game_id missing or invalid: {value!r}")
    return str(value)


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise MalformedPayload(f"{what} must be an object, got {type(value).__name__}")
    return value


def _require(entry: Mapping[str, Any], key: str, kind: type) -> Any:
    if key not in entry:
        raise MalformedPayload(f"missing required field {key!r}")
    value = entry[key]
    if not isinstance(value, kind):
        raise MalformedPayload(
            f"field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _require_int(entry: Mapping[str, Any], key: str) -> int:
    value = _require(entry, key, int)
    if isinstance(value, bool) or value < 0:
        raise MalformedPayload(f"field {key!r} must be a non-negative integer")
    return value


def _optional(entry: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = entry.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise MalformedPayload(
            f"field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional_int(entry: Mapping[str, Any], key: str, default: int) -> int:
    if entry.get(key) is None:
        return default
    return _require_int(entry, key)


def _string_tuple(value: Optional[Any], key: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedPayload(f"field {key!r} must be a list of strings")
    return tuple(value)
