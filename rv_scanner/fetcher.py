"""Single-shot, shape-dispatched reads of one key's full value."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Mapping

from rv_common.errors import FetchError, RVError, ShapeMismatchError
from rv_scanner.models import DetailResult, DetailValue, ScoredMember, ValueShape
from rv_scanner.store import StoreClient

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 2.0


def _as_scalar(payload: Any) -> str:
    if not isinstance(payload, str):
        raise TypeError(f"expected a string, got {type(payload).__name__}")
    return payload


def _as_strings(payload: Any) -> tuple[str, ...]:
    if isinstance(payload, (str, bytes, Mapping)) or not _iterable(payload):
        raise TypeError(f"expected a list of strings, got {type(payload).__name__}")
    items = tuple(payload)
    if not all(isinstance(item, str) for item in items):
        raise TypeError("expected a list of strings")
    return items


def _as_members(payload: Any) -> tuple[str, ...]:
    return tuple(sorted(_as_strings(payload)))


def _as_scored(payload: Any) -> tuple[ScoredMember, ...]:
    if isinstance(payload, (str, bytes, Mapping)) or not _iterable(payload):
        raise TypeError(f"expected (member, score) pairs, got {type(payload).__name__}")
    members = []
    for entry in payload:
        if not isinstance(entry, (tuple, list)) or len(entry) != 2:
            raise TypeError("expected (member, score) pairs")
        member, score = entry
        if not isinstance(member, str) or isinstance(score, bool):
            raise TypeError("expected (member, score) pairs")
        try:
            members.append(ScoredMember(member, float(score)))
        except (TypeError, ValueError):
            raise TypeError(f"score of {member!r} is not a number: {score!r}") from None
    return tuple(members)


def _as_fields(payload: Any) -> dict[str, str]:
    if not isinstance(payload, Mapping):
        raise TypeError(f"expected a field map, got {type(payload).__name__}")
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in payload.items()):
        raise TypeError("expected string fields and values")
    return dict(payload)


def _iterable(payload: Any) -> bool:
    try:
        iter(payload)
    except TypeError:
        return False
    return True


_Reader = Callable[[StoreClient, str], Any]
_Decoder = Callable[[Any], DetailValue]

_DISPATCH: dict[ValueShape, tuple[_Reader, _Decoder]] = {
    ValueShape.SCALAR: (lambda s, k: s.read_scalar(k), _as_scalar),
    ValueShape.SEQUENCE: (lambda s, k: s.read_sequence(k), _as_strings),
    ValueShape.SET: (lambda s, k: s.read_set(k), _as_members),
    ValueShape.SCORED_SEQUENCE: (lambda s, k: s.read_scored_sequence(k), _as_scored),
    ValueShape.FIELDS: (lambda s, k: s.read_fields(k), _as_fields),
}


class ValueFetcher:
    """Reads a key according to its declared shape.

    Transport failures surface as FetchError. A payload that does not decode
    as the declared shape surfaces as ShapeMismatchError, which points at a
    disagreement between the scan config and the stored data.
    """

    def __init__(
        self,
        store: StoreClient,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_workers: int = 2,
    ) -> None:
        self._store = store
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="rv-fetch"
        )

    def read(self, key: str, shape: ValueShape) -> DetailResult:
        """Perform the read on the calling thread."""
        reader, decoder = _DISPATCH[shape]
        context = {"key": key, "shape": shape.value}
        try:
            payload = reader(self._store, key)
        except ShapeMismatchError:
            raise
        except RVError as exc:
            raise FetchError(str(exc), context=context, cause=exc) from exc
        except Exception as exc:
            raise FetchError(
                f"{type(exc).__name__}: {exc}", context=context, cause=exc
            ) from exc
        try:
            value = decoder(payload)
        except (TypeError, ValueError) as exc:
            raise ShapeMismatchError(
                f"{shape.value} data error: {exc}", context=context, cause=exc
            ) from exc
        return DetailResult(key=key, shape=shape, value=value)

    def submit(self, key: str, shape: ValueShape) -> Future[DetailResult]:
        """Schedule a read on the fetch pool and return its future."""
        return self._executor.submit(self.read, key, shape)

    def fetch(
        self, key: str, shape: ValueShape, timeout: float | None = None
    ) -> DetailResult:
        """Read with a deadline; a read still pending after it raises FetchError."""
        deadline = self.timeout if timeout is None else timeout
        future = self.submit(key, shape)
        try:
            return future.result(timeout=deadline)
        except FutureTimeoutError as exc:
            future.cancel()
            raise FetchError(
                f"read of {key!r} timed out after {deadline:g}s",
                context={"key": key, "shape": shape.value, "timeout": deadline},
                cause=exc,
            ) from exc

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> "ValueFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
