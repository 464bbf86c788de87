"""
Statement execution shared by the session and metadata stores.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..core.types import Consistency
from ..metrics import StoreMetrics, get_global_metrics
from .types import DatabaseClient


logger = logging.getLogger(__name__)


class QueryExecutor:
    """
    Runs statements against the client on behalf of a store.

    Failures are logged with the operation and statement, counted and
    re-raised unchanged. Nothing is retried.
    """

    store_name = "store"

    def __init__(self, client: DatabaseClient, metrics: Optional[StoreMetrics] = None):
        self.db = client
        self.metrics = metrics or get_global_metrics()

    def _execute(self, operation: str, query: str, params: Mapping[str, Any],
                 consistency: Consistency = Consistency.QUORUM) -> List[Dict[str, Any]]:
        try:
            with self.metrics.timer(self.store_name, operation):
                rows = self.db.execute(query, params, consistency)
        except Exception as e:
            logger.error(f"Received Cassandra exception in {self.store_name}.{operation}: {e} (query: {query})")
            raise

        logger.debug(f"{self.store_name}.{operation} returned {len(rows)} row(s)")
        return rows

    def close(self) -> None:
        """Close the underlying client."""
        self.db.close()
