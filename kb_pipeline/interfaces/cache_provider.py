"""Abstract base class for the rendered-page cache.

Rendered PDF pages are cached in memory under ``{doc_id}_{page_number}``.
The cache is bounded in both size and age; a bounded cache keeps memory flat
and an age limit means a re-uploaded document never serves stale pages for
long even if invalidation was missed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ICacheProvider(ABC):
    """Contract for byte-valued caches keyed by string."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the cached bytes for *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Store *value* under *key*, evicting the oldest entry when full."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; no-op if absent."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with *prefix*; returns the number removed."""
