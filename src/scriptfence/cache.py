"""Pattern cache and blacklist result cache."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any

# Budget for cached blacklist verdicts, in characters of cached URLs
MAX_BLACKLIST_CACHE_LENGTH = 100_000
# Eviction shrinks the cache below this share of the budget
BLACKLIST_CACHE_LOW_WATER = 0.75


class PatternCache:
    """Key/value store for compiled testers and regex test outcomes.

    Reads never change recency; callers mark reused entries with :meth:`hit`.
    The least recently used entry is evicted once `max_size` is exceeded.
    """

    def __init__(self, max_size: int = 2000) -> None:
        self.max_size = max_size
        self._data: OrderedDict[str, Any] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Any:
        value = self._data.get(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self.max_size:
            self._data.popitem(last=False)
            self._evictions += 1

    def hit(self, key: str) -> None:
        if key in self._data:
            self._data.move_to_end(key)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def stats(self) -> dict:
        return {
            "size": len(self._data),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }


class BlacklistCache:
    """FIFO cache of blacklist verdicts keyed by URL.

    Bounded by the total length of cached URLs rather than the entry count.
    Once the total exceeds `max_length`, the oldest entries are dropped until
    it falls below 75% of `max_length`, so eviction does not run on every
    insert near the limit.
    """

    def __init__(self, max_length: int = MAX_BLACKLIST_CACHE_LENGTH) -> None:
        self.max_length = max_length
        self._data: dict[str, str | bool] = {}
        self._size = 0

    @property
    def size(self) -> int:
        return self._size

    def get(self, url: str) -> str | bool | None:
        return self._data.get(url)

    def put(self, url: str, verdict: str | bool | None) -> None:
        if url in self._data:
            self._size -= len(url)
            del self._data[url]
        self._data[url] = verdict or False
        self._size += len(url)
        if self._size > self.max_length:
            self._evict()

    def _evict(self) -> None:
        low_water = self.max_length * BLACKLIST_CACHE_LOW_WATER
        for url in list(self._data):
            del self._data[url]
            self._size -= len(url)
            if self._size < low_water:
                break

    def clear(self) -> None:
        self._data.clear()
        self._size = 0

    def __contains__(self, url: str) -> bool:
        return url in self._data

    def __len__(self) -> int:
        return len(self._data)
