"""
A Cassandra datastore for session and application key-value records.

Records live in the ``session`` table keyed by (type, key). Values are
serialized with encode_value and may carry a TTL so the cluster purges
them on expiry.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from . import types
from .base import QueryExecutor
from ..core.config import CassandraConfig, SESSION_PREFIX
from ..core.types import Consistency
from ..db import queries
from ..db.client import connect_from_config
from ..errors import ErrorCode, PreconditionViolation, require_string
from ..metrics import StoreMetrics
from ..util.encoding import decode_value, encode_value
from ..util.keys import normalize_key


logger = logging.getLogger(__name__)


# Expiry values at or below this are durations passed by mistake, not timestamps
MIN_EXPIRE = 2592000


class CassandraStore(QueryExecutor, types.Store):
    """
    Session store backed by the ``session`` table.

    All statements run at QUORUM. Cluster failures propagate to the
    caller and are never retried.
    """

    store_name = "session"

    def __init__(self, client: Optional[types.DatabaseClient] = None,
                 config: Optional[CassandraConfig] = None,
                 metrics: Optional[StoreMetrics] = None,
                 clock: Callable[[], float] = time.time,
                 false_as_absent: Optional[bool] = None):
        """
        Initialize the session store.

        Args:
            client: An open database client; one is connected from config if omitted
            config: Cluster settings, read from the environment if omitted
            metrics: Metrics collector, the global one by default
            clock: Source of the current unix time
            false_as_absent: Treat stored False as absent; taken from config if omitted
        """
        if config is None and client is None:
            config = CassandraConfig.from_env()
        if client is None:
            client = connect_from_config(config)

        super().__init__(client, metrics)
        self.config = config
        self.clock = clock
        if false_as_absent is None:
            false_as_absent = config.false_as_absent if config is not None else False
        self.false_as_absent = false_as_absent

    @classmethod
    def from_mapping(cls, mapping, **kwargs) -> "CassandraStore":
        """Create a store from ``store.cassandra.*`` configuration keys."""
        return cls(config=CassandraConfig.from_mapping(mapping, SESSION_PREFIX), **kwargs)

    def get(self, type: str, key: str) -> Any:
        """
        Retrieve a value from the datastore.

        Returns:
            The value, or None if there is none or it cannot be decoded
        """
        require_string(type, "type", "get")
        require_string(key, "key", "get")

        params = {'type': type, 'key': normalize_key(key)}
        rows = self._execute("get", queries.SESSION_SELECT, params, Consistency.QUORUM)
        if not rows:
            return None

        return decode_value(rows[0].get('value'), self.false_as_absent)

    def set(self, type: str, key: str, value: Any,
            expire: Optional[Union[int, float, datetime]] = None) -> None:
        """
        Save a value to the datastore.

        Args:
            type: The data type
            key: The key
            value: The value
            expire: The expiration time (unix timestamp or datetime), or None
                if it never expires

        Raises:
            PreconditionViolation: If expire is not a plausible expiration time
        """
        require_string(type, "type", "set")
        require_string(key, "key", "set")

        ttl = None
        if expire is not None:
            ttl = self._remaining_ttl(expire)
            if ttl <= 0:
                logger.debug(f"Not storing {type} record that has already expired")
                return

        params = {
            'type': type,
            'key': normalize_key(key),
            'value': encode_value(value),
        }

        if ttl is None:
            self._execute("set", queries.SESSION_INSERT, params, Consistency.QUORUM)
        else:
            params['ttl'] = ttl
            self._execute("set", queries.SESSION_INSERT_TTL, params, Consistency.QUORUM)

    def delete(self, type: str, key: str) -> None:
        """Delete a value from the datastore. Missing keys are ignored."""
        require_string(type, "type", "delete")
        require_string(key, "key", "delete")

        params = {'type': type, 'key': normalize_key(key)}
        self._execute("delete", queries.SESSION_DELETE, params, Consistency.QUORUM)

    def _remaining_ttl(self, expire: Union[int, float, datetime]) -> int:
        if isinstance(expire, datetime):
            if expire.tzinfo is None:
                expire = expire.replace(tzinfo=timezone.utc)
            expire = expire.timestamp()
        elif isinstance(expire, bool) or not isinstance(expire, (int, float)):
            raise PreconditionViolation(
                f"expire must be a unix timestamp or datetime, got {type(expire).__name__}",
                field="expire",
                code=ErrorCode.INVALID_TTL,
                operation="set",
            )

        if expire <= MIN_EXPIRE:
            raise PreconditionViolation(
                f"expire must be an absolute unix timestamp, got {expire}",
                field="expire",
                code=ErrorCode.INVALID_TTL,
                operation="set",
            )

        return int(expire - self.clock())
