"""Namespaced cache for personalization inputs."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from ..cache import CacheStats, TTLCache
from ..config import Settings, settings

logger = logging.getLogger(__name__)


def interests_cache_key(user_id: str) -> str:
    return f"interests:{user_id}"


def portfolio_cache_key(user_id: str) -> str:
    return f"portfolio:{user_id}"


def articles_cache_key(fingerprint: str) -> str:
    return f"articles:{fingerprint}"


class FeedCache:
    """Cache of interests, portfolios and candidate pools.

    Interaction history is deliberately absent: it is read fresh on every
    request.
    """

    def __init__(self, store: Optional[TTLCache] = None, ttl: Optional[int] = None) -> None:
        self._store = store or TTLCache()
        self._ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedCache":
        store = TTLCache(
            default_ttl=settings.cache_ttl_seconds,
            max_size=settings.max_cache_size,
            coalesce=settings.cache_coalesce_fetches,
        )
        return cls(store, ttl=settings.cache_ttl_seconds)

    @property
    def coalesce(self) -> bool:
        return self._store.coalesce

    async def get(self, key: str) -> Any:
        return await self._store.get(key)

    async def set(self, key: str, value: Any, *, ttl: Optional[int] = None) -> None:
        await self._store.set(key, value, ttl=ttl if ttl is not None else self._ttl)

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        return await self._store.get_or_fetch(key, fetcher, ttl=self._ttl)

    async def clear(self) -> None:
        await self._store.clear()
        logger.info("Feed cache cleared")

    def stats(self) -> CacheStats:
        return self._store.stats()


_feed_cache: Optional[FeedCache] = None


def get_feed_cache() -> FeedCache:
    """Get the process-wide feed cache, configured from settings."""
    global _feed_cache
    if _feed_cache is None:
        _feed_cache = FeedCache.from_settings(settings)
    return _feed_cache


__all__ = [
    "FeedCache",
    "articles_cache_key",
    "get_feed_cache",
    "interests_cache_key",
    "portfolio_cache_key",
]
