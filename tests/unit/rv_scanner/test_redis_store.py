"""RedisStore against a mocked redis-py client."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import redis

from rv_common.errors import ConnectError, ShapeMismatchError, StoreError
from rv_scanner.config import RedisSettings
from rv_scanner.store import RedisStore, ScanCancelled, connect


pytestmark = pytest.mark.unit_scanner


def _client() -> MagicMock:
    return MagicMock(spec=redis.Redis)


def test_scan_drains_every_cursor_page() -> None:
    client = _client()
    client.scan.side_effect = [(7, ["a:1", "a:2"]), (3, ["a:3"]), (0, [])]
    store = RedisStore(client, page_size=2)

    assert store.scan("a:*") == ["a:1", "a:2", "a:3"]
    assert client.scan.call_count == 3
    first = client.scan.call_args_list[0]
    assert first.kwargs == {"cursor": 0, "match": "a:*", "count": 2}
    assert client.scan.call_args_list[1].kwargs["cursor"] == 7


def test_scan_failure_mid_cursor_raises_instead_of_returning_partial() -> None:
    client = _client()
    client.scan.side_effect = [(5, ["a:1"]), redis.ConnectionError("lost")]
    store = RedisStore(client)

    with pytest.raises(StoreError, match="lost"):
        store.scan("a:*")


def test_scan_stops_when_predicate_trips() -> None:
    client = _client()
    client.scan.return_value = (5, ["a:1"])
    calls = iter([False, True])
    store = RedisStore(client)

    with pytest.raises(ScanCancelled):
        store.scan("a:*", lambda: next(calls))
    assert client.scan.call_count == 1


def test_wrongtype_maps_to_shape_mismatch() -> None:
    client = _client()
    client.hgetall.side_effect = redis.ResponseError(
        "WRONGTYPE Operation against a key holding the wrong kind of value"
    )
    store = RedisStore(client)

    with pytest.raises(ShapeMismatchError) as excinfo:
        store.read_fields("k")
    assert excinfo.value.context["command"] == "HGETALL"


def test_other_response_errors_are_store_errors() -> None:
    client = _client()
    client.lrange.side_effect = redis.ResponseError("ERR unknown")
    with pytest.raises(StoreError):
        RedisStore(client).read_sequence("k")


def test_missing_scalar_is_a_store_error() -> None:
    client = _client()
    client.get.return_value = None
    with pytest.raises(StoreError, match="key not found"):
        RedisStore(client).read_scalar("k")


def test_typed_reads_use_full_ranges() -> None:
    client = _client()
    client.smembers.return_value = {"b", "a"}
    client.zrange.return_value = [("m", 1.5)]
    store = RedisStore(client)

    assert store.read_set("s") == ["a", "b"]
    assert store.read_scored_sequence("z") == [("m", 1.5)]
    client.zrange.assert_called_once_with("z", 0, -1, withscores=True)


def test_connect_wraps_ping_failures(monkeypatch) -> None:
    client = _client()
    client.ping.side_effect = redis.ConnectionError("refused")
    monkeypatch.setattr(RedisStore, "from_settings", classmethod(lambda cls, s: cls(client)))

    with pytest.raises(ConnectError, match="refused") as excinfo:
        connect(RedisSettings(server="db:6379"))
    assert excinfo.value.context["server"] == "db:6379"
    client.close.assert_called_once()


def test_connect_returns_store_on_pong(monkeypatch) -> None:
    client = _client()
    client.ping.return_value = True
    monkeypatch.setattr(RedisStore, "from_settings", classmethod(lambda cls, s: cls(client)))

    store = connect(RedisSettings())
    assert store.client is client


def test_from_settings_builds_decoding_client() -> None:
    store = RedisStore.from_settings(
        RedisSettings(
            server="cache:6390", db=1, password="pw", read_timeout=2.5, write_timeout=1.0
        )
    )
    kwargs = store.client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6390
    assert kwargs["db"] == 1
    assert kwargs["password"] == "pw"
    assert kwargs["socket_timeout"] == 2.5
    assert kwargs["decode_responses"] is True


def test_socket_timeout_covers_the_slower_direction() -> None:
    store = RedisStore.from_settings(
        RedisSettings(read_timeout=1.0, write_timeout=4.0, dial_timeout=0.5, idle_timeout=30)
    )
    kwargs = store.client.connection_pool.connection_kwargs
    assert kwargs["socket_timeout"] == 4.0
    assert kwargs["socket_connect_timeout"] == 0.5
    assert kwargs["health_check_interval"] == 30
