"""
Upstream Client Tests

Every failure surfaces as a typed FetchResult; nothing raises.
"""

import json

import httpx
import pytest

from serverbrowser.contracts.base import FetchStatus
from serverbrowser.ingestion import UpstreamClient

from tests.fixtures import FakeClock, FakeUpstream, TEST_CONFIG, T1, make_entry


@pytest.fixture
def upstream():
    return FakeUpstream([make_entry(1, players=2), make_entry(2)])


@pytest.fixture
def client(upstream):
    return UpstreamClient(TEST_CONFIG, clock=FakeClock(T1), transport=upstream.transport)


class TestFetchDirectory:

    def test_success_returns_every_record(self, client):
        result = client.fetch_directory()

        assert result.success
        assert result.status == FetchStatus.SUCCESS
        assert [r.id for r in result.records] == ["1", "2"]
        assert result.http_status == 200
        assert result.completed_at == T1

    def test_sends_credentials_and_user_agent(self, client, upstream):
        client.fetch_directory()

        request = upstream.requests[0]
        assert request.url.path == "/get-games"
        assert request.url.params["username"] == "tester"
        assert request.url.params["token"] == "secret-token"
        assert request.headers["User-Agent"] == TEST_CONFIG.user_agent

    def test_empty_directory_is_success(self, client, upstream):
        upstream.serve()
        result = client.fetch_directory()
        assert result.success
        assert result.records == ()

    @pytest.mark.parametrize("code", [401, 403])
    def test_auth_rejection_is_distinguished(self, client, upstream, code):
        upstream.fail_with(code)
        result = client.fetch_directory()

        assert result.status == FetchStatus.AUTH_REJECTED
        assert result.http_status == code
        assert result.records == ()

    @pytest.mark.parametrize("code", [404, 500, 502, 503])
    def test_other_http_errors_are_network_errors(self, client, upstream, code):
        upstream.fail_with(code)
        result = client.fetch_directory()

        assert result.status == FetchStatus.NETWORK_ERROR
        assert result.http_status == code

    def test_timeout(self, client, upstream):
        upstream.error = httpx.ReadTimeout("read timed out")
        result = client.fetch_directory()

        assert result.status == FetchStatus.TIMEOUT
        assert result.records == ()
        assert result.error_message

    def test_connection_refused(self, client, upstream):
        upstream.error = httpx.ConnectError("connection refused")
        result = client.fetch_directory()

        assert result.status == FetchStatus.NETWORK_ERROR
        assert "ConnectError" in result.error_message

    def test_error_message_never_leaks_token(self, client, upstream):
        upstream.error = httpx.ConnectError("connection refused")
        result = client.fetch_directory()
        assert "secret-token" not in result.error_message

    def test_non_json_body_is_malformed(self, client, upstream):
        upstream.body = b"<html>maintenance</html>"
        result = client.fetch_directory()
        assert result.status == FetchStatus.MALFORMED

    def test_wrong_shape_is_malformed(self, client, upstream):
        upstream.body = b'{"servers": []}'
        result = client.fetch_directory()
        assert result.status == FetchStatus.MALFORMED

    def test_one_bad_entry_yields_no_records(self, client, upstream):
        bad = make_entry(3)
        bad["max_players"] = "lots"
        upstream.serve(make_entry(1), make_entry(2), bad)

        result = client.fetch_directory()

        assert result.status == FetchStatus.MALFORMED
        assert result.records == ()
        assert "entry 2" in result.error_message

    def test_out_of_range_game_time_is_zero(self, client, upstream):
        body = json.dumps([make_entry(1)]).replace(
            '"game_time_elapsed": 120', '"game_time_elapsed": 1e400'
        )
        upstream.body = body.encode()

        result = client.fetch_directory()

        assert result.success
        assert result.records[0].game_time_elapsed == 0

    def test_deeply_nested_body_is_malformed(self, client, upstream):
        upstream.body = b"[" * 100000 + b"]" * 100000
        result = client.fetch_directory()

        assert result.status == FetchStatus.MALFORMED
        assert result.records == ()


class TestFetchDetails:

    def test_success(self, client, upstream):
        upstream.details["1"] = {
            "game_id": 1,
            "name": "server 1",
            "players": ["alice"],
            "mods": [{"name": "base", "version": "1.1.100"}],
        }
        result = client.fetch_details("1")

        assert result.success
        assert result.details.players == ("alice",)
        assert result.details.mods[0].name == "base"

    def test_does_not_send_credentials(self, client, upstream):
        upstream.details["1"] = {"game_id": 1, "name": "server 1"}
        client.fetch_details("1")
        assert "token" not in upstream.requests[0].url.params

    def test_unknown_server(self, client):
        result = client.fetch_details("999")
        assert result.status == FetchStatus.NETWORK_ERROR
        assert result.http_status == 404

    def test_timeout(self, client, upstream):
        upstream.error = httpx.ConnectTimeout("connect timed out")
        assert client.fetch_details("1").status == FetchStatus.TIMEOUT

    def test_server_id_is_escaped_in_the_path(self, client, upstream):
        result = client.fetch_details("a?b/c")

        request = upstream.requests[0]
        assert request.url.raw_path == b"/get-game-details/a%3Fb%2Fc"
        assert not request.url.params
