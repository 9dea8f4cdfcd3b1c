# tracker_streams/services/metadata_cache.py

import hashlib
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from ..config import CACHE_EVICTION_FRACTION, MAX_METADATA_CACHE_ENTRIES, logger
from .torrent_data import TorrentMetadata


@dataclass
class _CacheEntry:
    url: str
    payload: bytes
    stored_at: float
    metadata: TorrentMetadata | None = None


def cache_key(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


class TorrentFileCache:
    """In-memory store of downloaded ``.torrent`` payloads.

    Entries are keyed by the MD5 of their download URL and never expire on
    their own. When a new key would overflow ``max_entries`` the oldest quarter
    of the cache is dropped in one batch before the insert.
    """

    def __init__(self, max_entries: int = MAX_METADATA_CACHE_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and cache_key(url) in self._entries

    @property
    def eviction_batch_size(self) -> int:
        return max(1, math.floor(self.max_entries * CACHE_EVICTION_FRACTION))

    def get(self, url: str) -> bytes | None:
        entry = self._entries.get(cache_key(url))
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.payload

    def put(self, url: str, payload: bytes) -> None:
        key = cache_key(url)
        if key in self._entries:
            # Refreshing an entry makes it the newest without growing the cache.
            self._entries.pop(key)
        elif len(self._entries) >= self.max_entries:
            self._evict_oldest()
        self._entries[key] = _CacheEntry(url=url, payload=payload, stored_at=time.time())

    def get_metadata(self, url: str) -> TorrentMetadata | None:
        """Decoded metadata memoized for ``url``; does not touch the counters."""
        entry = self._entries.get(cache_key(url))
        return entry.metadata if entry else None

    def put_metadata(self, url: str, metadata: TorrentMetadata) -> None:
        entry = self._entries.get(cache_key(url))
        if entry is not None:
            entry.metadata = metadata

    def _evict_oldest(self) -> None:
        batch = min(self.eviction_batch_size, len(self._entries))
        for _ in range(batch):
            self._entries.popitem(last=False)
        self.evictions += batch
        logger.debug(
            f"[CACHE] Evicted {batch} oldest torrent files ({len(self._entries)} remain)"
        )

    def stats(self) -> dict[str, Any]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": len(self._entries),
            "max_size": self.max_entries,
            "hit_rate": self.hits / lookups if lookups else 0.0,
        }

    def list_entries(self) -> list[dict[str, Any]]:
        """Cached payloads, newest first."""
        listing = [
            {
                "cache_key": key,
                "filename": f"{key}.torrent",
                "size": len(entry.payload),
                "stored_at": entry.stored_at,
                "url": entry.url,
            }
            for key, entry in self._entries.items()
        ]
        listing.reverse()
        return listing

    def clear(self) -> None:
        self._entries.clear()
        self.hits = self.misses = self.evictions = 0
        logger.info("[CACHE] Torrent file cache cleared")
