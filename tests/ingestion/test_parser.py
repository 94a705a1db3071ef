"""
Parser Tests

Upstream JSON -> ServerRecord. Required fields are strict; optional
fields fall back to defaults; one bad entry rejects the listing.
"""

import pytest

from serverbrowser.contracts.base import MalformedPayload
from serverbrowser.contracts.records import ModInfo
from serverbrowser.ingestion import parse_details, parse_directory, parse_game_time, parse_server

from tests.fixtures import make_entry


class TestParseServer:

    def test_maps_upstream_fields(self):
        entry = make_entry(
            42, name="Space Age Co-op", players=3, max_players=16,
            version="2.0.10", has_password=True, tags=["coop", "space"],
            description="chill", mod_count=7, has_mods=True
        )
        record = parse_server(entry)

        assert record.id == "42"
        assert record.name == "Space Age Co-op"
        assert record.description == "chill"
        assert record.game_version == "2.0.10"
        assert record.build_version == 60000
        assert record.has_password is True
        assert record.is_dedicated is True
        assert record.player_count == 3
        assert record.players == ("player0", "player1", "player2")
        assert record.max_players == 16
        assert record.tags == frozenset({"coop", "space"})
        assert record.mod_count == 7
        assert record.has_mods is True
        assert record.mod_list == ()
        assert record.host_address == "10.0.0.42:34197"

    def test_missing_optional_fields_use_defaults(self):
        entry = {
            "game_id": 1,
            "name": "bare",
            "max_players": 0,
            "has_password": False,
            "application_version": {"game_version": "1.1.0"},
        }
        record = parse_server(entry)

        assert record.description == ""
        assert record.tags == frozenset()
        assert record.player_count == 0
        assert record.players == ()
        assert record.is_dedicated is False
        assert record.mod_count == 0
        assert record.build_version == 0
        assert record.game_time_elapsed == 0
        assert record.host_address is None

    def test_null_players_means_empty(self):
        entry = make_entry(1)
        entry["players"] = None
        record = parse_server(entry)
        assert record.player_count == 0

    def test_player_count_above_max_is_tolerated(self):
        record = parse_server(make_entry(1, players=12, max_players=10))
        assert record.player_count == 12
        assert record.is_full

    def test_string_game_id_is_kept_opaque(self):
        entry = make_entry(1)
        entry["game_id"] = "abc-1"
        record = parse_server(entry)
        assert record.id == "abc-1"

    @pytest.mark.parametrize("field", ["game_id", "name", "has_password", "max_players", "application_version"])
    def test_missing_required_field_is_malformed(self, field):
        entry = make_entry(1)
        del entry[field]
        with pytest.raises(MalformedPayload):
            parse_server(entry)

    @pytest.mark.parametrize("field,value", [
        ("name", 5),
        ("has_password", "no"),
        ("max_players", "10"),
        ("max_players", -1),
        ("max_players", True),
        ("game_id", None),
        ("game_id", True),
        ("players", "alice"),
        ("tags", [1, 2]),
        ("application_version", "1.1.0"),
    ])
    def test_wrong_type_is_malformed(self, field, value):
        entry = make_entry(1)
        entry[field] = value
        with pytest.raises(MalformedPayload):
            parse_server(entry)

    def test_non_object_entry_is_malformed(self):
        with pytest.raises(MalformedPayload):
            parse_server(["not", "an", "object"])


class TestParseDirectory:

    def test_parses_every_entry_in_order(self):
        records = parse_directory([make_entry(1), make_entry(2), make_entry(3)])
        assert [r.id for r in records] == ["1", "2", "3"]

    def test_empty_list_is_valid(self):
        assert parse_directory([]) == []

    def test_one_bad_entry_rejects_everything(self):
        bad = make_entry(2)
        del bad["name"]
        with pytest.raises(MalformedPayload, match="entry 1"):
            parse_directory([make_entry(1), bad, make_entry(3)])

    @pytest.mark.parametrize("payload", [None, {}, "servers", 42])
    def test_non_list_payload_is_malformed(self, payload):
        with pytest.raises(MalformedPayload):
            parse_directory(payload)


class TestParseGameTime:

    @pytest.mark.parametrize("value,expected", [
        (120, 120),
        (90.7, 90),
        ("300", 300),
        (" 45 ", 45),
        ("", 0),
        ("soon", 0),
        (None, 0),
        (True, 0),
        (-5, 0),
        ([], 0),
        (float("inf"), 0),
        (float("-inf"), 0),
        (float("nan"), 0),
    ])
    def test_accepts_numbers_and_numeric_strings(self, value, expected):
        assert parse_game_time(value) == expected

    def test_string_game_time_in_entry(self):
        record = parse_server(make_entry(1, game_time_elapsed="4242"))
        assert record.game_time_elapsed == 4242


class TestParseDetails:

    def test_parses_mods_and_players(self):
        details = parse_details({
            "game_id": 7,
            "name": "modded",
            "description": "lots of mods",
            "players": ["alice", "bob"],
            "mods": [
                {"name": "base", "version": "1.1.100"},
                {"name": "Krastorio2", "version": "1.3.0"},
            ],
            "application_version": {"game_version": "1.1.100"},
        })

        assert details.server_id == "7"
        assert details.players == ("alice", "bob")
        assert details.mods == (
            ModInfo("base", "1.1.100"),
            ModInfo("Krastorio2", "1.3.0"),
        )
        assert details.game_version == "1.1.100"

    def test_missing_mods_and_version(self):
        details = parse_details({"game_id": 7, "name": "vanilla"})
        assert details.mods == ()
        assert details.players == ()
        assert details.game_version == ""

    def test_bad_mod_entry_is_malformed(self):
        with pytest.raises(MalformedPayload):
            parse_details({"game_id": 7, "name": "x", "mods": [{"name": "base"}]})
