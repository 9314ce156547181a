"""String key/value caches: in-process memory and Redis backed."""

from __future__ import annotations

import threading
from datetime import timedelta

import redis


class MemoryCache:
    """Thread-safe in-memory cache. Expiry times are accepted but ignored."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def set_and_expire(self, key: str, value: str, expire: timedelta | float) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> str:
        """Return the stored value, or an empty string if the key is absent."""
        with self._lock:
            return self._data.get(key, "")

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        return addr or "localhost", 6379
    return host or "localhost", int(port)


class RedisCache:
    """Cache backed by a Redis server at ``host:port``."""

    def __init__(self, addr: str, password: str | None) -> None:
        host, port = _split_addr(addr)
        self._client = redis.Redis(
            host=host,
            port=port,
            password=password or None,
            decode_responses=True,
        )

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    def set_and_expire(self, key: str, value: str, expire: timedelta | float) -> None:
        if not isinstance(expire, timedelta):
            expire = timedelta(seconds=expire)
        self._client.set(key, value, ex=expire)

    def get(self, key: str) -> str:
        """Return the stored value, or an empty string if the key is absent."""
        value = self._client.get(key)
        if value is None:
            return ""
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def connection(self) -> redis.Redis:
        """The underlying Redis client."""
        return self._client