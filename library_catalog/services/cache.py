"""
Caching Service

A small key/value cache with two interchangeable backends:

- RedisCache: shared cache used when REDIS_URL is configured and reachable
- MemoryCache: in-process dictionary with per-entry expiry

The backend is chosen once, on first use (build_cache / get_cache). If Redis
is unconfigured or the initial ping fails, the process keeps the in-memory
backend for its whole lifetime; there is no reconnect loop.

The cache is best-effort and never a source of truth:
- Values are JSON serialized (RedisCache) or stored as-is (MemoryCache)
- Backend errors are logged; reads degrade to a miss, writes to a no-op
- Expired in-memory entries are evicted lazily when they are read

Cache keys:
- Rating summaries: book:{book_id}:rating_summary
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Optional

import redis
from redis.exceptions import RedisError

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TTL = 30


# =============================================================================
# Cache Key Generation
# =============================================================================

def make_cache_key(prefix: str, *args, **kwargs) -> str:
    """
    Generate a consistent cache key from prefix and arguments.

    Examples:
        make_cache_key("book", 1, "rating_summary") -> "book:1:rating_summary"
        make_cache_key("books", page=1, page_size=10) -> "books:page=1:page_size=10"

    Args:
        prefix: Cache key prefix (e.g., "book")
        *args: Positional arguments to include in key
        **kwargs: Keyword arguments to include in key (sorted for consistency)

    Returns:
        Cache key string
    """
    parts = [prefix]

    for arg in args:
        if arg is not None:
            parts.append(str(arg))

    for key in sorted(kwargs.keys()):
        value = kwargs[key]
        if value is not None:
            parts.append(f"{key}={value}")

    return ":".join(parts)


def rating_summary_key(book_id: int) -> str:
    """Cache key of a book's rating summary."""
    return make_cache_key("book", book_id, "rating_summary")


# =============================================================================
# Backends
# =============================================================================

class CacheBackend(ABC):
    """Interface shared by every cache backend."""

    name: str = "cache"

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        """Store a value for ttl seconds. Returns True if it was stored."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if the backend accepted the delete."""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry. Destructive; meant for test isolation."""

    def stats(self) -> dict:
        """Backend status for the health endpoint."""
        return {"backend": self.name}


class MemoryCache(CacheBackend):
    """
    In-process cache with lazy expiry.

    Entries are stored as (value, expires_at) where expires_at comes from the
    injected clock (time.monotonic by default). A lock guards the dictionary
    because synchronous FastAPI handlers run in a thread pool.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache MISS: {key}")
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                logger.debug(f"Cache EXPIRED: {key}")
                return None
        logger.debug(f"Cache HIT: {key}")
        return value

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        logger.debug(f"Cache DELETE: {key}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {"backend": self.name, "status": "connected", "keys": len(self)}


class RedisCache(CacheBackend):
    """Redis-backed cache. Values are stored as JSON with SETEX."""

    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self._client.get(key)
            if value is not None:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"Cache MISS: {key}")
            return None
        except RedisError as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Cache JSON decode error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        try:
            serialized = json.dumps(value, default=str)
            self._client.setex(key, ttl, serialized)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except RedisError as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache serialization error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            self._client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except RedisError as e:
            logger.warning(f"Cache delete error for {key}: {e}")
            return False

    def clear(self) -> None:
        try:
            self._client.flushdb()
        except RedisError as e:
            logger.warning(f"Cache flush error: {e}")

    def close(self) -> None:
        self._client.close()
        logger.info("Redis connection closed")

    def stats(self) -> dict:
        try:
            info = self._client.info("stats")
            return {
                "backend": self.name,
                "status": "connected",
                "hits": info.get("keyspace_hits", 0),
                "misses": info.get("keyspace_misses", 0),
                "keys": self._client.dbsize(),
            }
        except RedisError:
            return {"backend": self.name, "status": "error"}


# =============================================================================
# Backend Selection
# =============================================================================

def build_cache(redis_url: str | None) -> CacheBackend:
    """
    Pick the cache backend for this process.

    Tries Redis once when a URL is configured; any connection error falls
    back to MemoryCache.

    Args:
        redis_url: Redis connection URL, or empty/None for in-process caching

    Returns:
        The selected backend
    """
    if not redis_url:
        logger.info("REDIS_URL not set, using in-memory cache")
        return MemoryCache()

    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        client.ping()
    except (RedisError, ValueError) as e:
        logger.warning(f"Redis unavailable, using in-memory cache: {e}")
        return MemoryCache()

    logger.info("Successfully connected to Redis")
    return RedisCache(client)


@lru_cache
def get_cache() -> CacheBackend:
    """
    Process-wide cache backend, selected on first use.

    Use as a FastAPI dependency; tests override it with a fresh MemoryCache.
    """
    return build_cache(get_settings().redis_url)


def close_cache() -> None:
    """Close the Redis connection on shutdown, if one was opened."""
    if get_cache.cache_info().currsize == 0:
        return
    cache = get_cache()
    if isinstance(cache, RedisCache):
        cache.close()
