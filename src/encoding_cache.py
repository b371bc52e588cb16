"""Bounded FIFO memo for computed grids, frequency bands, and encodings."""

import logging
from typing import Any, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


def make_cache_key(kind: str, *params) -> Tuple:
    """
    Stable key from a value kind and its numeric parameters.

    Floats are normalised so that 10000 and 10000.0 produce equal keys;
    nested sequences (e.g. axes_dim) become tuples.
    """
    return (kind,) + tuple(_normalise(p) for p in params)


def _normalise(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return tuple(_normalise(v) for v in value)
    return value


class EncodingCache:
    """
    FIFO cache holding at most max_size entries.

    Eviction follows insertion order only; reads do not refresh an entry.
    Not safe for concurrent writers.
    """

    def __init__(self, max_size: int = 50):
        if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size < 1:
            raise ValueError(f"max_size must be a positive integer, got {max_size}")
        self.max_size = max_size
        self._data: Dict[Hashable, Any] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable, default: Optional[Any] = None) -> Optional[Any]:
        if key in self._data:
            self.hits += 1
            return self._data[key]
        self.misses += 1
        return default

    def put(self, key: Hashable, value: Any) -> None:
        """Insert value, evicting the oldest entry first when full.

        Replacing an existing key keeps its original insertion position.
        """
        if key in self._data:
            self._data[key] = value
            return
        if len(self._data) >= self.max_size:
            oldest = next(iter(self._data))
            del self._data[oldest]
            self.evictions += 1
            logger.debug("Evicted cache entry %r", oldest)
        self._data[key] = value

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        self._data.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def stats(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": len(self._data),
            "max_size": self.max_size,
            "keys": list(self._data),
        }

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
