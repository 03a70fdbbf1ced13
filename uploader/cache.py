"""
Disk-backed cache of the remote recordings list.

The recordings list shown to the user is fetched from the API and cached on
disk with a TTL. Every successful queue delivery changes the authoritative
list, so the queue processor calls invalidate() after each one.

Key design decisions:
- SQLite-backed storage via diskcache
- Store plain dicts (RemoteRecord.model_dump) rather than model instances
- Short default TTL (5 minutes); invalidation makes staleness rare anyway

Example:
    >>> from uploader.cache import RecordingsCache
    >>> cache = RecordingsCache("/path/to/data_dir")
    >>> cache.set_recordings(records)
    >>> cached = cache.get_recordings()
    >>> cache.invalidate()  # after an upload lands
"""

import logging
import os
from typing import Any, Dict, List, Optional

from diskcache import Cache

from uploader.client import RemoteRecord

logger = logging.getLogger('VoiceSync.uploader.cache')


class RecordingsCache:
    """
    Disk-backed cache for the recordings list.

    Args:
        data_dir: Base directory for cache storage (cache/ subdirectory created)
        ttl: TTL in seconds for cached pages (default: 300; 0 = no expiry)
        size_limit: Maximum cache size in bytes (default: 20MB)
    """

    DEFAULT_TTL = 300

    DEFAULT_SIZE_LIMIT = 20 * 1024 * 1024

    def __init__(
        self,
        data_dir: str,
        ttl: int = DEFAULT_TTL,
        size_limit: int = DEFAULT_SIZE_LIMIT,
    ) -> None:
        self._ttl = ttl

        cache_dir = os.path.join(data_dir, 'cache')
        os.makedirs(cache_dir, exist_ok=True)
        self._cache = Cache(cache_dir, size_limit=size_limit)

        self._hits = 0
        self._misses = 0
        self._invalidations = 0

        logger.debug(f"RecordingsCache initialized at {cache_dir} (TTL: {ttl}s)")

    def _make_key(self, limit: int, offset: int) -> str:
        return f"recordings:{limit}:{offset}"

    def get_recordings(self, limit: int = 20, offset: int = 0) -> Optional[List[RemoteRecord]]:
        """
        Get a cached page of recordings.

        Returns:
            List of RemoteRecord if cached, None on cache miss
        """
        result = self._cache.get(self._make_key(limit, offset))
        if result is None:
            self._misses += 1
            logger.debug(f"Cache miss for recordings page ({limit}, {offset})")
            return None

        self._hits += 1
        return [RemoteRecord.model_validate(item) for item in result]

    def set_recordings(self, records: List[RemoteRecord], limit: int = 20, offset: int = 0) -> None:
        """Cache a page of recordings."""
        data = [record.model_dump(mode='json', by_alias=True) for record in records]
        expire = self._ttl if self._ttl > 0 else None
        self._cache.set(self._make_key(limit, offset), data, expire=expire)
        logger.debug(f"Cached {len(data)} recordings (TTL: {self._ttl}s)")

    def invalidate(self) -> None:
        """Drop every cached page. Called after each successful delivery."""
        self._cache.clear()
        self._invalidations += 1
        logger.debug("Recordings cache invalidated")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with 'hits', 'misses', 'invalidations' and 'size' (entry count)
        """
        return {
            'hits': self._hits,
            'misses': self._misses,
            'invalidations': self._invalidations,
            'size': len(self._cache),
        }

    def close(self) -> None:
        self._cache.close()


__all__ = ['RecordingsCache']
