import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional
from dataclasses import dataclass


@dataclass
class CacheEntry:
    value: Any
    inserted_at: float
    expires_at: Optional[float] = None


@dataclass
class CacheStats:
    size: int
    max_size: int
    hits: int = 0
    misses: int = 0

    def to_header(self) -> str:
        return f"size:{self.size},max:{self.max_size}"


class TTLCache:
    """In-memory LRU cache with optional per-entry TTL.

    ``None`` is reserved as the "absent" marker, so falsy values such as an
    empty list are cached and returned like any other value.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = 300,
        max_size: int = 1000,
        coalesce: bool = False,
    ):
        self.default_ttl = default_ttl
        self.max_size = max(1, max_size)
        self.coalesce = coalesce
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.expires_at is not None and time.time() > entry.expires_at:
                del self._cache[key]
                self._misses += 1
                return None

            # Update access order for LRU
            self._cache.move_to_end(key)
            self._hits += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        async with self._lock:
            now = time.time()
            ttl = ttl if ttl is not None else self.default_ttl
            expires_at = now + ttl if ttl else None

            self._cache[key] = CacheEntry(value=value, inserted_at=now, expires_at=expires_at)
            self._cache.move_to_end(key)

            # Evict least recently used if over max size
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value for ``key``, fetching and storing it on a miss.

        With ``coalesce`` enabled, concurrent misses for one key await the
        same fetch instead of each hitting the backing store.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        if not self.coalesce:
            value = await fetcher()
            await self.set(key, value, ttl=ttl)
            return value

        owner = False
        async with self._lock:
            future = self._inflight.get(key)
            if future is None:
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future
                owner = True

        if not owner:
            return await future

        try:
            value = await fetcher()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited failure is not logged by the loop
            future.exception()
            raise
        else:
            await self.set(key, value, ttl=ttl)
            future.set_result(value)
            return value
        finally:
            async with self._lock:
                self._inflight.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        return len(self._cache)

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._cache),
            max_size=self.max_size,
            hits=self._hits,
            misses=self._misses,
        )
