"""Read-only store client consumed by the scanning engine and the fetcher."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Protocol, Sequence

import redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from rv_common.errors import ConnectError, ShapeMismatchError, StoreError
from rv_scanner.config import RedisSettings

logger = logging.getLogger(__name__)

SCAN_PAGE_SIZE = 100


class ScanCancelled(Exception):
    """Raised by ``scan`` when its stop predicate trips mid-enumeration."""


class StoreClient(Protocol):
    """Narrow read-only view of the key-value store."""

    def scan(
        self, pattern: str, should_stop: Callable[[], bool] | None = None
    ) -> list[str]: ...

    def read_scalar(self, key: str) -> str: ...

    def read_sequence(self, key: str) -> Sequence[str]: ...

    def read_set(self, key: str) -> Sequence[str]: ...

    def read_scored_sequence(self, key: str) -> Sequence[tuple[str, float]]: ...

    def read_fields(self, key: str) -> Mapping[str, str]: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


class RedisStore:
    """StoreClient backed by a redis-py client.

    The client is shared by every worker thread and every fetch; redis-py's
    connection pool is thread-safe, and nothing here writes to the server.
    """

    def __init__(self, client: redis.Redis, *, page_size: int = SCAN_PAGE_SIZE) -> None:
        self._client = client
        self._page_size = page_size

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisStore":
        client = redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password or None,
            socket_connect_timeout=settings.dial_timeout,
            # redis-py has one socket timeout for both directions.
            socket_timeout=max(settings.read_timeout, settings.write_timeout),
            health_check_interval=int(settings.idle_timeout),
            retry=_build_retry(settings.max_retries),
            decode_responses=True,
        )
        return cls(client)

    @property
    def client(self) -> redis.Redis:
        return self._client

    def scan(
        self, pattern: str, should_stop: Callable[[], bool] | None = None
    ) -> list[str]:
        """Drain a SCAN cursor; the full key list or an exception, never a partial page."""
        keys: list[str] = []
        cursor = 0
        while True:
            if should_stop is not None and should_stop():
                raise ScanCancelled(pattern)
            cursor, page = self._call(
                "SCAN", self._client.scan, cursor=cursor, match=pattern, count=self._page_size
            )
            keys.extend(page)
            if int(cursor) == 0:
                return keys

    def read_scalar(self, key: str) -> str:
        value = self._call("GET", self._client.get, key)
        if value is None:
            raise StoreError("key not found", context={"key": key})
        return value

    def read_sequence(self, key: str) -> list[str]:
        return self._call("LRANGE", self._client.lrange, key, 0, -1)

    def read_set(self, key: str) -> list[str]:
        return sorted(self._call("SMEMBERS", self._client.smembers, key))

    def read_scored_sequence(self, key: str) -> list[tuple[str, float]]:
        return self._call("ZRANGE", self._client.zrange, key, 0, -1, withscores=True)

    def read_fields(self, key: str) -> dict[str, str]:
        return self._call("HGETALL", self._client.hgetall, key)

    def ping(self) -> bool:
        return bool(self._call("PING", self._client.ping))

    def close(self) -> None:
        self._client.close()

    def _call(self, command: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except redis.ResponseError as exc:
            if str(exc).startswith("WRONGTYPE"):
                raise ShapeMismatchError(
                    str(exc), context={"command": command}, cause=exc
                ) from exc
            raise StoreError(str(exc), context={"command": command}, cause=exc) from exc
        except redis.RedisError as exc:
            raise StoreError(str(exc), context={"command": command}, cause=exc) from exc


def _build_retry(max_retries: int) -> Retry:
    return Retry(ExponentialBackoff(), max_retries)


def connect(settings: RedisSettings) -> RedisStore:
    """Build a RedisStore and confirm the server answers PING."""
    store = RedisStore.from_settings(settings)
    try:
        ok = store.ping()
    except StoreError as exc:
        store.close()
        raise ConnectError(
            f"test Redis connection ping: {exc}",
            context={"server": settings.server},
            cause=exc,
        ) from exc
    if not ok:
        store.close()
        raise ConnectError(
            "unexpected response from Redis to PING",
            context={"server": settings.server},
        )
    logger.info("Connected to Redis at %s (db %d)", settings.server, settings.db)
    return store
