"""
Cache of materialized metadata sets.
"""

import copy
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ..metrics import StoreMetrics, get_global_metrics


logger = logging.getLogger(__name__)


MetadataSet = Dict[str, Dict[str, Any]]


class MetadataSetCache:
    """
    Read-through cache from set name to the entities in that set.

    Each set is loaded at most once and kept for the lifetime of the
    cache; there is no invalidation. Owners wanting a fresh view create a
    new cache or call clear(). Loading happens under a lock, so
    concurrent first lookups of a set trigger a single load.

    Callers always receive a private copy of the cached set, so changes
    they make never reach other callers.
    """

    def __init__(self, metrics: Optional[StoreMetrics] = None):
        self._sets: Dict[str, MetadataSet] = {}
        self._lock = threading.Lock()
        self.metrics = metrics or get_global_metrics()

    def get_or_load(self, set_name: str, loader: Callable[[], MetadataSet]) -> MetadataSet:
        """Return a copy of the cached set, loading it with loader on first access."""
        cached = self._sets.get(set_name)
        if cached is not None:
            self.metrics.record_cache_lookup(set_name, hit=True)
            return copy.deepcopy(cached)

        with self._lock:
            cached = self._sets.get(set_name)
            if cached is not None:
                self.metrics.record_cache_lookup(set_name, hit=True)
                return copy.deepcopy(cached)

            self.metrics.record_cache_lookup(set_name, hit=False)
            loaded = loader()
            self._sets[set_name] = loaded
            self.metrics.set_cached_entities(set_name, len(loaded))
            logger.info(f"Cached metadata set {set_name} with {len(loaded)} entities")
            return copy.deepcopy(loaded)

    def __contains__(self, set_name: str) -> bool:
        return set_name in self._sets

    def clear(self) -> None:
        """Drop every cached set."""
        with self._lock:
            self._sets.clear()
