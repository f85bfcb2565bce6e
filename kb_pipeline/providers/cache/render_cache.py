"""In-memory cache for rendered page images using cachetools.FIFOCache.

Entries are evicted oldest-inserted first once ``max_size`` is reached and
read as misses once older than ``ttl`` seconds.  Each value is stored with
its insertion time so the age check does not depend on access order.
"""

from __future__ import annotations

import time
from typing import Callable

import structlog
from cachetools import FIFOCache

from kb_pipeline.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class RenderCache(ICacheProvider):
    """Bounded, age-limited byte cache keyed by ``{doc_id}_{page_number}``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the oldest-inserted is evicted.
    ttl:
        Age in seconds after which an entry is treated as missing.
    timer:
        Clock returning seconds; injectable for tests.
    """

    def __init__(
        self,
        max_size: int = 50,
        ttl: int = 3600,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._timer = timer
        self._cache: FIFOCache[str, tuple[float, bytes]] = FIFOCache(maxsize=max_size)

    def __len__(self) -> int:
        return len(self._cache)

    def _expired(self, stored_at: float) -> bool:
        return self._timer() - stored_at > self._ttl

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> bytes | None:
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return None
        stored_at, value = entry
        if self._expired(stored_at):
            self._cache.pop(key, None)
            logger.debug("cache_expired", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: bytes) -> None:
        # Re-setting a key moves it to the back of the eviction queue.
        self._cache.pop(key, None)
        self._cache[key] = (self._timer(), value)
        logger.debug("cache_set", key=key, size=len(self._cache))

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        entry = self._cache.get(key)
        return entry is not None and not self._expired(entry[0])

    async def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._cache if k.startswith(prefix)]
        for key in keys:
            self._cache.pop(key, None)
        if keys:
            logger.debug("cache_delete_prefix", prefix=prefix, count=len(keys))
        return len(keys)
