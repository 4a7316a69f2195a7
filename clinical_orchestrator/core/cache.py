"""Bounded in-memory cache with FIFO eviction."""

from collections import OrderedDict
from typing import Generic, Iterator, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Mapping with a fixed capacity that evicts the oldest inserted key first.

    Re-putting an existing key updates its value without changing its
    insertion position.
    """

    def __init__(self, capacity: int) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum number of entries. Must be positive.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data: "OrderedDict[K, V]" = OrderedDict()

    def put(self, key: K, value: V) -> Optional[K]:
        """Store a value, evicting the oldest entry if the cache is full.

        Args:
            key: Cache key.
            value: Value to store.

        Returns:
            The evicted key, or None if nothing was evicted.
        """
        if key in self._data:
            self._data[key] = value
            return None

        evicted = None
        if len(self._data) >= self.capacity:
            evicted, _ = self._data.popitem(last=False)
        self._data[key] = value
        return evicted

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(key, default)

    def pop(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._data.pop(key, default)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[K]:
        return list(self._data.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._data.keys()))
