"""
In-memory LRU cache bounded by entry count and total cost.
"""

from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, List, Optional


@dataclass
class MemoryEntry:
    """A single cached value and its accounted cost."""
    value: Any
    cost: int


class MemoryCache:
    """
    Thread-safe in-memory LRU cache.

    Features:
    - LRU eviction when the entry count limit is reached
    - LRU eviction until the summed cost fits the cost limit
    - Values larger than the cost limit are never stored
    """

    def __init__(self, count_limit: int = 100, total_cost_limit: int = 50_000_000):
        if count_limit <= 0:
            raise ValueError("count_limit must be positive")
        if total_cost_limit <= 0:
            raise ValueError("total_cost_limit must be positive")

        self.count_limit = count_limit
        self.total_cost_limit = total_cost_limit
        self._cache: OrderedDict[str, MemoryEntry] = OrderedDict()
        self._lock = Lock()
        self._total_cost = 0
        self.evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    @property
    def total_cost(self) -> int:
        with self._lock:
            return self._total_cost

    def _evict_lru(self, incoming_cost: int) -> None:
        """Evict least recently used entries until the incoming entry fits."""
        while self._cache and (
            len(self._cache) >= self.count_limit
            or self._total_cost + incoming_cost > self.total_cost_limit
        ):
            _, entry = self._cache.popitem(last=False)
            self._total_cost -= entry.cost
            self.evictions += 1

    def get(self, key: str) -> Optional[Any]:
        """Get a value and mark it most recently used."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            self._cache.move_to_end(key)
            return entry.value

    def set(self, key: str, value: Any, cost: int = 0) -> bool:
        """
        Store a value with the given cost.

        Returns:
            False if the value alone exceeds the cost limit and was not stored.
        """
        cost = max(0, int(cost))
        with self._lock:
            # Remove old entry if exists
            if key in self._cache:
                old_entry = self._cache.pop(key)
                self._total_cost -= old_entry.cost

            if cost > self.total_cost_limit:
                return False

            self._evict_lru(cost)
            self._cache[key] = MemoryEntry(value=value, cost=cost)
            self._total_cost += cost
            return True

    def delete(self, key: str) -> bool:
        """Delete a value from cache."""
        with self._lock:
            entry = self._cache.pop(key, None)
            if entry is None:
                return False
            self._total_cost -= entry.cost
            return True

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._total_cost = 0
            return count

    def keys(self) -> List[str]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._cache.keys())

    def get_info(self) -> Dict[str, Any]:
        """Current usage against the configured limits."""
        with self._lock:
            return {
                "entry_count": len(self._cache),
                "count_limit": self.count_limit,
                "total_cost": self._total_cost,
                "total_cost_limit": self.total_cost_limit,
                "evictions": self.evictions,
            }
