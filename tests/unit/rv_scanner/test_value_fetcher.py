"""Shape-dispatched reads through ValueFetcher."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from rv_common.errors import FetchError, ShapeMismatchError
from rv_scanner.fetcher import ValueFetcher
from rv_scanner.models import ScoredMember, ValueShape

pytestmark = pytest.mark.unit_scanner


@pytest.fixture
def fetcher(store):
    with ValueFetcher(store, timeout=1.0) as value_fetcher:
        yield value_fetcher


@pytest.mark.parametrize(
    "shape, stored, expected",
    [
        (ValueShape.SCALAR, "hello", "hello"),
        (ValueShape.SEQUENCE, ["b", "a", "b"], ("b", "a", "b")),
        (ValueShape.SET, {"b", "a"}, ("a", "b")),
        (
            ValueShape.SCORED_SEQUENCE,
            [("low", 1), ("high", 9.5)],
            (ScoredMember("low", 1.0), ScoredMember("high", 9.5)),
        ),
        (ValueShape.FIELDS, {"name": "alice"}, {"name": "alice"}),
    ],
)
def test_read_dispatches_on_declared_shape(store, fetcher, shape, stored, expected) -> None:
    store.put("k", shape, stored)

    result = fetcher.fetch("k", shape)

    assert result.key == "k"
    assert result.shape is shape
    assert result.value == expected
    assert not result.is_error


def test_reads_are_repeatable(store, fetcher) -> None:
    store.put("user:1", ValueShape.FIELDS, {"name": "alice", "age": "30"})
    assert fetcher.fetch("user:1", ValueShape.FIELDS) == fetcher.fetch(
        "user:1", ValueShape.FIELDS
    )


def test_store_type_mismatch_is_not_a_fetch_error(store, fetcher) -> None:
    store.put("k", ValueShape.SCALAR, "plain")
    with pytest.raises(ShapeMismatchError):
        fetcher.fetch("k", ValueShape.FIELDS)


def test_undecodable_payload_is_a_shape_mismatch() -> None:
    client = MagicMock()
    client.read_sequence.return_value = "not-a-list"
    client.read_fields.return_value = [("a", "b")]
    fetcher = ValueFetcher(client)
    try:
        with pytest.raises(ShapeMismatchError, match="list data error"):
            fetcher.read("k", ValueShape.SEQUENCE)
        with pytest.raises(ShapeMismatchError, match="hash data error"):
            fetcher.read("k", ValueShape.FIELDS)
    finally:
        fetcher.close()


def test_transport_failures_become_fetch_errors(store, fetcher) -> None:
    with pytest.raises(FetchError, match="key not found") as excinfo:
        fetcher.fetch("missing", ValueShape.SCALAR)
    assert excinfo.value.context == {"key": "missing", "shape": "key"}

    client = MagicMock()
    client.read_set.side_effect = OSError("socket closed")
    with ValueFetcher(client) as other:
        with pytest.raises(FetchError, match="OSError: socket closed"):
            other.read("s", ValueShape.SET)


def test_fetch_times_out(store) -> None:
    store.put("slow", ValueShape.SCALAR, "v")
    store.read_gate = threading.Event()
    fetcher = ValueFetcher(store, timeout=0.05)
    try:
        with pytest.raises(FetchError, match="timed out after 0.05s"):
            fetcher.fetch("slow", ValueShape.SCALAR)
    finally:
        store.read_gate.set()
        fetcher.close()


def test_submit_returns_future(store, fetcher) -> None:
    store.put("k", ValueShape.SCALAR, "v")
    future = fetcher.submit("k", ValueShape.SCALAR)
    assert future.result(timeout=2).value == "v"


def test_non_numeric_score_is_a_shape_mismatch() -> None:
    client = MagicMock()
    client.read_scored_sequence.return_value = [("m", "not-a-number")]
    with ValueFetcher(client) as fetcher:
        with pytest.raises(ShapeMismatchError, match="zset data error: score of 'm'"):
            fetcher.read("z", ValueShape.SCORED_SEQUENCE)
