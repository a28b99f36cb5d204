"""Variant cache — paired payload/metadata storage over the disk store."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from imgvariants.cache.disk import DiskCache
from imgvariants.cache.keys import Namespace, VariantKey, namespaced_key
from imgvariants.cache.stats import CacheStats
from imgvariants.errors.exceptions import CacheReadError, CacheWriteError
from imgvariants.types import TransformInfo

logger = logging.getLogger(__name__)


class VariantCache:
    """Optional durable cache; without a directory every get misses and every put is a no-op."""

    def __init__(
        self,
        cache_dir: Path | None = None,
        max_size_mb: float = 5000,
    ) -> None:
        self._disk: DiskCache | None = None
        if cache_dir:
            try:
                self._disk = DiskCache(cache_dir, max_size_mb=max_size_mb)
            except CacheReadError as e:
                logger.warning("Cache unavailable, running uncached: %s", e)
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self._disk is not None

    async def get(self, namespace: Namespace, key: str) -> bytes | None:
        """Read one namespace; any read failure is reported as a miss."""
        if self._disk is None:
            return None
        full_key = namespaced_key(namespace, key)
        try:
            return await asyncio.to_thread(self._disk.get, full_key)
        except CacheReadError as e:
            logger.debug("Cache read for %s failed, treating as miss: %s", full_key, e)
            return None

    async def put(self, namespace: Namespace, key: str, data: bytes) -> None:
        """Persist one namespace. Failures raise CacheWriteError."""
        if self._disk is None:
            return
        full_key = namespaced_key(namespace, key)
        try:
            await asyncio.to_thread(self._disk.set, full_key, data)
        except OSError as e:
            raise CacheWriteError(f"Cannot write cache entry: {e}", key=full_key, original=e) from e

    async def lookup(self, key: VariantKey) -> tuple[bytes, TransformInfo] | None:
        """Fetch payload and metadata together. Both must be present and valid."""
        if self._disk is None:
            self._stats.misses += 1
            return None

        payload, raw_info = await asyncio.gather(
            self.get(Namespace.BUFFER, key.base),
            self.get(Namespace.META, key.base),
        )
        info = _decode_info(raw_info, key) if raw_info is not None else None
        if payload is None or info is None:
            if (payload is None) != (raw_info is None):
                logger.debug("Partial cache hit for %s, retransforming", key.base)
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return payload, info

    async def store(self, key: VariantKey, payload: bytes, info: TransformInfo) -> None:
        """Write payload and metadata concurrently; both must succeed."""
        if self._disk is None:
            return
        await asyncio.gather(
            self.put(Namespace.BUFFER, key.base, payload),
            self.put(Namespace.META, key.base, info.model_dump_json().encode("utf-8")),
        )
        self._stats.writes += 1

    def clear(self) -> None:
        """Clear all cached variants."""
        if self._disk:
            self._disk.clear()
        self._stats = CacheStats()

    def stats(self) -> CacheStats:
        """Return aggregate cache statistics."""
        return CacheStats(
            entries=self._disk.entry_count if self._disk else 0,
            size_mb=self._disk.size_mb if self._disk else 0.0,
            hits=self._stats.hits,
            misses=self._stats.misses,
            writes=self._stats.writes,
        )

    def close(self) -> None:
        if self._disk:
            self._disk.close()


def _decode_info(raw: bytes, key: VariantKey) -> TransformInfo | None:
    try:
        return TransformInfo.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("Cached metadata for %s is unreadable: %s", key.base, e)
        return None
