"""Thread-safe TTL cache for permission decisions."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable

from ..config.defaults import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS


class ResultCache:
    """LRU cache with time-to-live for permission results."""

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._cache: OrderedDict[Hashable, Any] = OrderedDict()
        self._timestamps: dict[Hashable, float] = {}
        self._lock = threading.Lock()

        # Stats
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Any | None:
        """Get an item if present and not expired."""
        with self._lock:
            if key not in self._cache:
                self.misses += 1
                return None

            if self._clock() - self._timestamps[key] > self.ttl:
                del self._cache[key]
                del self._timestamps[key]
                self.misses += 1
                return None

            self._cache.move_to_end(key)
            self.hits += 1
            return self._cache[key]

    def set(self, key: Hashable, value: Any) -> None:
        """Store an item, evicting the least recently used one when full."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                del self._timestamps[oldest_key]

            self._cache[key] = value
            self._timestamps[key] = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._timestamps.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def hit_rate(self) -> float:
        with self._lock:
            return self._hit_rate()

    def _hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def stats(self) -> dict[str, Any]:
        """Consistent snapshot of size and hit counters."""
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "ttl": self.ttl,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": f"{self._hit_rate() * 100:.1f}%",
            }
