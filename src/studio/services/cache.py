"""Result cache and in-flight request registry for generation calls."""

import asyncio
import hashlib
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as aioredis

from src.studio.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCRIPT_CACHE_PREFIX = "script:"


class LeaderCancelledError(RuntimeError):
    """Raised to SingleFlight followers when the leading call was cancelled."""

    pass


def script_cache_key(
    topic: str,
    persona: str | None = None,
    length_minutes: float | None = None,
    language: str | None = None,
) -> str:
    """
    Cache key for a script request.

    Absent optional fields serialize as null so that omitted and explicit
    null values share one entry.

    Example:
        >>> script_cache_key("Black holes", persona="curious teens")
        'script:5f0c...'
    """
    normalized = json.dumps(
        {"topic": topic, "persona": persona, "length": length_minutes, "language": language},
        separators=(",", ":"),
    )
    return SCRIPT_CACHE_PREFIX + hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class BaseCache(ABC):
    """JSON key/value store with per-entry expiry."""

    @abstractmethod
    async def get_json(self, key: str) -> Any | None:
        """Return the decoded value, or None when absent or expired."""
        pass

    @abstractmethod
    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a JSON-serializable value for ttl_seconds."""
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None


class MemoryCache(BaseCache):
    """Thread-safe in-process TTL cache."""

    def __init__(self, maxsize: int = 1024) -> None:
        self._store: dict[str, tuple[float, str]] = {}
        self._maxsize = max(1, maxsize)
        self._lock = threading.RLock()

    async def get_json(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, raw = entry
            if time.monotonic() >= expires_at:
                self._store.pop(key, None)
                return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        raw = json.dumps(value, separators=(",", ":"))
        with self._lock:
            self._evict_expired()
            while len(self._store) >= self._maxsize:
                # dicts keep insertion order, so this drops the oldest entry
                self._store.pop(next(iter(self._store)))
            self._store[key] = (time.monotonic() + ttl_seconds, raw)

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for key in [k for k, (expires_at, _) in self._store.items() if expires_at <= now]:
            self._store.pop(key, None)


class RedisCache(BaseCache):
    """Cache entries stored in Redis with native key expiry."""

    def __init__(self, redis_url: str, *, socket_timeout: float = 5.0) -> None:
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    async def get_json(self, key: str) -> Any | None:
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.client.set(key, json.dumps(value, separators=(",", ":")), ex=max(1, ttl_seconds))

    async def close(self) -> None:
        await self.client.aclose()


def get_cache(settings: Settings) -> BaseCache:
    """Build the cache selected by ``settings.cache_backend``."""
    if settings.cache_backend == "redis":
        return RedisCache(settings.redis_url)
    return MemoryCache()


class SingleFlight:
    """
    Collapses concurrent calls that share a key into one execution.

    The first caller for a key (the leader) runs the work; callers that
    arrive while it is in flight await the leader's outcome. When the leader
    fails or is cancelled, each waiting caller runs the work itself.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future] = {}

    async def do(self, key: str, work: Callable[[], Awaitable[T]]) -> tuple[T, bool]:
        """
        Run work once per key across concurrent callers.

        Args:
            key: Deduplication key
            work: Zero-argument coroutine factory

        Returns:
            (result, shared) where shared is True when the result came from
            another caller's execution
        """
        existing = self._inflight.get(key)
        if existing is not None:
            try:
                return await asyncio.shield(existing), True
            except Exception as e:
                logger.warning(
                    f"In-flight call for {key} failed, retrying independently: {e}",
                    extra={"cache_key": key},
                )
                return await work(), False

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await work()
        except BaseException as e:
            # Resolve on cancellation too so followers fall back instead of waiting
            if isinstance(e, Exception):
                future.set_exception(e)
            else:
                future.set_exception(LeaderCancelledError(f"In-flight call for {key} was cancelled"))
            # Mark retrieved so an unobserved failure is not reported at GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            self._inflight.pop(key, None)
