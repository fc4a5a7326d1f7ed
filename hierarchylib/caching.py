"""
Caching layer for hierarchylib.

Provides a transparent read cache that can wrap any Hierarchy. Nested-set
reads are pure functions of the table between two structural changes, so
cached results stay valid until the next refresh or delete made through
the wrapper.
"""

import copy
import logging
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

from cachetools import TTLCache

from .config import DepthFilter
from .hierarchy import Hierarchy, RefreshResult
from .queries import Columns

logger = logging.getLogger(__name__)


class CachingHierarchy:
    """
    Read cache in front of a Hierarchy.

    Read operations are memoized in a TTL cache keyed by operation and
    arguments. ``refresh`` and ``delete`` pass through to the wrapped
    hierarchy and then clear the cache. Writes made to the table by other
    means are only picked up when entries expire or ``clear_cache`` runs.

    Example:
        hier = CachingHierarchy(Hierarchy(engine, "category"), max_size=1000)
        hier.tree("name")   # miss, hits the store
        hier.tree("name")   # hit
        hier.refresh()      # invalidates
    """

    def __init__(self, hierarchy: Hierarchy, max_size: int = 1000, ttl: float = 300.0):
        """
        Initialize the caching wrapper.

        Args:
            hierarchy: The hierarchy to wrap
            max_size: Maximum number of cached results
            ttl: Time-to-live for cache entries in seconds
        """
        self._hierarchy = hierarchy
        self._cache = TTLCache(maxsize=max_size, ttl=ttl)

        # Statistics
        self.cache_hits = 0
        self.cache_misses = 0
        self.invalidations = 0

    @property
    def hierarchy(self) -> Hierarchy:
        return self._hierarchy

    def _cached(self, key: Tuple[Hashable, ...], compute):
        if key in self._cache:
            self.cache_hits += 1
            # Callers may mutate what they get back
            return copy.deepcopy(self._cache[key])

        self.cache_misses += 1
        result = compute()
        self._cache[key] = result
        logger.debug("Cached %s (%d entries)", key[0], len(self._cache))
        return copy.deepcopy(result)

    @staticmethod
    def _freeze(value: Any) -> Hashable:
        if isinstance(value, (list, tuple)):
            return tuple(CachingHierarchy._freeze(v) for v in value)
        if isinstance(value, DepthFilter):
            return (
                "DepthFilter",
                value.min_depth,
                value.max_depth,
                tuple(sorted(value.specific_depths)) if value.specific_depths is not None else None,
                tuple(sorted(value.exclude_depths or ())),
            )
        if isinstance(value, (set, frozenset)):
            return frozenset(value)
        return value

    # Structural changes

    def refresh(self, order: Optional[str] = None) -> RefreshResult:
        """Refresh the wrapped hierarchy and invalidate the cache."""
        try:
            return self._hierarchy.refresh(order)
        finally:
            self._invalidate()

    def delete(self, node_id: Any) -> List[Any]:
        """Delete through the wrapped hierarchy and invalidate the cache."""
        try:
            return self._hierarchy.delete(node_id)
        finally:
            self._invalidate()

    def _invalidate(self) -> None:
        self._cache.clear()
        self.invalidations += 1

    # Cached reads

    def resolve_id(self, field: str, values: Sequence[Any]) -> Optional[Any]:
        key = ("resolve_id", field, self._freeze(list(values)))
        return self._cached(key, lambda: self._hierarchy.resolve_id(field, values))

    def path(self, field: str, value: Any, columns: Optional[Columns] = None) -> Dict[Any, Any]:
        key = ("path", field, value, self._freeze(columns))
        return self._cached(key, lambda: self._hierarchy.path(field, value, columns))

    def children(self, node_id: Any, columns: Columns) -> Dict[Any, Any]:
        key = ("children", node_id, self._freeze(columns))
        return self._cached(key, lambda: self._hierarchy.children(node_id, columns))

    def level(self, depth: int, columns: Columns) -> Dict[Any, Any]:
        key = ("level", depth, self._freeze(columns))
        return self._cached(key, lambda: self._hierarchy.level(depth, columns))

    def tree(self, columns: Columns, field: Optional[str] = None, value: Any = None,
             having: Any = None) -> Dict[Any, Dict[str, Any]]:
        key = ("tree", self._freeze(columns), field, value, self._freeze(having))
        return self._cached(key, lambda: self._hierarchy.tree(columns, field, value, having))

    def counts(self, table: str, match: str, node_id: Any = None) -> Any:
        key = ("counts", table, match, node_id)
        return self._cached(key, lambda: self._hierarchy.counts(table, match, node_id))

    # Reconstruction needs no store access

    nestify = staticmethod(Hierarchy.nestify)
    lister = staticmethod(Hierarchy.lister)
    flatten = staticmethod(Hierarchy.flatten)

    def get_cache_stats(self) -> dict:
        """
        Get cache statistics for monitoring and debugging.
        """
        total_requests = self.cache_hits + self.cache_misses
        hit_rate = self.cache_hits / total_requests if total_requests > 0 else 0

        return {
            'cache_hits': self.cache_hits,
            'cache_misses': self.cache_misses,
            'hit_rate': hit_rate,
            'invalidations': self.invalidations,
            'cache_size': len(self._cache),
            'max_size': self._cache.maxsize,
            'ttl': self._cache.ttl
        }

    def clear_cache(self) -> None:
        """
        Clear all cached entries and reset statistics.
        """
        self._cache.clear()
        self.cache_hits = 0
        self.cache_misses = 0
        self.invalidations = 0
