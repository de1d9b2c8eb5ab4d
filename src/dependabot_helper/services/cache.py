"""Per-user, time-boxed memoization of repository host lookups."""

from __future__ import annotations

import asyncio
import hashlib
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from dependabot_helper.config import get_settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Seconds; used when no settings are supplied.
SHORT_LIFETIME = 20.0
LONG_LIFETIME = 3600.0


def token_key(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class ResponseCache:
    """Process-wide keyed store with a TTL per entry.

    Keys are always namespaced by the requesting user's identity. A TTL below
    the short lifetime, or ``disabled=True``, bypasses the store entirely.
    Concurrent lookups of the same key share a single in-flight fetch, and a
    failed fetch is never stored.
    """

    def __init__(
        self,
        *,
        short_lifetime: float = SHORT_LIFETIME,
        long_lifetime: float = LONG_LIFETIME,
        disabled: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.short_lifetime = short_lifetime
        self.long_lifetime = long_lifetime
        self.disabled = disabled
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _key(user_id: str, key: str) -> str:
        return f"{user_id}:{key}"

    async def get_or_compute(
        self,
        user_id: str,
        key: str,
        ttl: float,
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        if self.disabled or ttl < self.short_lifetime:
            return await factory()

        cache_key = self._key(user_id, key)
        entry = self._entries.get(cache_key)
        if entry is not None:
            expires_at, value = entry
            if self._clock() < expires_at:
                self._hits += 1
                return value
            del self._entries[cache_key]

        task = self._inflight.get(cache_key)
        if task is None:
            self._misses += 1
            task = asyncio.ensure_future(factory())
            self._inflight[cache_key] = task
            task.add_done_callback(lambda done: self._store(cache_key, ttl, done))
        # Shielded so one cancelled caller does not cancel the fetch for the others.
        return await asyncio.shield(task)

    def _store(self, cache_key: str, ttl: float, task: asyncio.Future[Any]) -> None:
        self._inflight.pop(cache_key, None)
        if task.cancelled() or task.exception() is not None:
            return
        now = self._clock()
        self._evict_expired(now)
        self._entries[cache_key] = (now + ttl, task.result())

    def _evict_expired(self, now: float) -> None:
        # Keys tied to a head commit are never read again once the commit changes.
        for cache_key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[cache_key]

    def invalidate(self, user_id: Optional[str] = None) -> None:
        if user_id is None:
            self._entries.clear()
            return
        prefix = f"{user_id}:"
        for cache_key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[cache_key]

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "enabled": not self.disabled,
            "entries": len(self._entries),
            "in_flight": len(self._inflight),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{self._hits / max(1, total) * 100:.0f}%",
        }


_response_cache: Optional[ResponseCache] = None


def get_response_cache() -> ResponseCache:
    global _response_cache
    if _response_cache is not None:
        return _response_cache

    settings = get_settings()
    _response_cache = ResponseCache(
        short_lifetime=settings.cache_lifetime_seconds,
        long_lifetime=settings.cache_long_lifetime_seconds,
        disabled=settings.disable_caching,
    )
    if settings.disable_caching:
        logger.warning("DISABLE_CACHING set; all repository host lookups are live")
    return _response_cache
