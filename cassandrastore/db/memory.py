"""
In-memory database client.

Understands exactly the statements in ``queries`` with Cassandra's
semantics: inserts are upserts of the listed columns, deletes of missing
rows succeed, TTLs expire rows and ``toTimestamp(now())`` is filled in by
the "server". Suitable for development and testing.

Note: All data is lost when the process terminates.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from . import queries
from ..core.types import Consistency
from ..errors import ErrorCode, ErrorContext, StorageError


logger = logging.getLogger(__name__)


class MemoryClient:
    """
    In-memory implementation of the database client.

    Every executed statement is recorded in ``executed`` as a
    ``(query, params, consistency)`` tuple.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

        # (type, key) -> (value, expires_at)
        self._sessions: Dict[Tuple[str, str], Tuple[str, Optional[float]]] = {}

        # (feed, entityid) -> columns
        self._entities: Dict[Tuple[str, str], Dict[str, Any]] = {}

        self._lock = threading.RLock()
        self.executed: List[Tuple[str, Dict[str, Any], Optional[Consistency]]] = []
        self.closed = False

        self._handlers: Dict[str, Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = {
            queries.SESSION_SELECT: self._select_session,
            queries.SESSION_INSERT: self._insert_session,
            queries.SESSION_INSERT_TTL: self._insert_session,
            queries.SESSION_DELETE: self._delete_session,
            queries.ENTITY_SELECT: lambda p: self._select_entity(p, queries.ENTITY_COLUMNS),
            queries.LOGO_SELECT: lambda p: self._select_entity(p, queries.LOGO_COLUMNS),
            queries.FEED_SELECT: lambda p: self._select_feed(p, queries.FEED_COLUMNS),
            queries.REG_AUTH_SELECT: lambda p: self._select_feed(p, queries.REG_AUTH_COLUMNS),
            queries.ENTITY_INSERT_CREATED: lambda p: self._upsert_entity(p, 'created'),
            queries.ENTITY_INSERT_UPDATED: lambda p: self._upsert_entity(p, 'updated'),
            queries.ENTITY_SOFT_DELETE: lambda p: self._upsert_entity(p, 'updated'),
            queries.ENTITY_DELETE: self._delete_entity,
        }

    def execute(self, query: str, params: Optional[Mapping[str, Any]] = None,
                consistency: Optional[Consistency] = None) -> List[Dict[str, Any]]:
        """Run one of the known statements."""
        params = dict(params or {})
        with self._lock:
            self.executed.append((query, params, consistency))

            if query.lstrip().upper().startswith('CREATE '):
                # Schema statements have nothing to create in memory
                return []

            handler = self._handlers.get(query)
            if handler is None:
                raise StorageError(
                    "Unsupported statement for the in-memory client",
                    code=ErrorCode.UNSUPPORTED_QUERY,
                    context=ErrorContext(query=query),
                )
            return handler(params)

    def close(self) -> None:
        """Release the client."""
        self.closed = True

    def _now(self) -> datetime:
        # Cassandra timestamps have millisecond precision and come back naive UTC
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc).replace(tzinfo=None)
        return now.replace(microsecond=(now.microsecond // 1000) * 1000)

    # Session table

    def _select_session(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        row_key = (params['type'], params['key'])
        stored = self._sessions.get(row_key)
        if stored is None:
            return []

        value, expires_at = stored
        if expires_at is not None and expires_at <= self.clock():
            del self._sessions[row_key]
            return []
        return [{'value': value}]

    def _insert_session(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        ttl = params.get('ttl')
        expires_at = self.clock() + int(ttl) if ttl else None
        self._sessions[(params['type'], params['key'])] = (params['value'], expires_at)
        return []

    def _delete_session(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._sessions.pop((params['type'], params['key']), None)
        return []

    # Entities table

    def _project(self, row: Dict[str, Any], columns: Tuple[str, ...]) -> Dict[str, Any]:
        return {column: row.get(column) for column in columns}

    def _select_entity(self, params: Dict[str, Any], columns: Tuple[str, ...]) -> List[Dict[str, Any]]:
        row = self._entities.get((params['feed'], params['entityid']))
        if row is None:
            return []
        return [self._project(row, columns)]

    def _select_feed(self, params: Dict[str, Any], columns: Tuple[str, ...]) -> List[Dict[str, Any]]:
        # Clustering order is by entity id within a partition
        return [
            self._project(row, columns)
            for (feed, _), row in sorted(self._entities.items())
            if feed == params['feed']
        ]

    def _upsert_entity(self, params: Dict[str, Any], timestamp_column: str) -> List[Dict[str, Any]]:
        row_key = (params['feed'], params['entityid'])
        row = self._entities.setdefault(row_key, {'feed': row_key[0], 'entityid': row_key[1]})
        for column, value in params.items():
            row[column] = value
        row[timestamp_column] = self._now()
        return []

    def _delete_entity(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._entities.pop((params['feed'], params['entityid']), None)
        return []

    # Memory-specific methods

    def put_entity_columns(self, feed: str, entity_id: str, **columns: Any) -> None:
        """Write raw columns, e.g. logo data maintained by another process."""
        with self._lock:
            row = self._entities.setdefault((feed, entity_id), {'feed': feed, 'entityid': entity_id})
            row.update(columns)

    def clear_all(self) -> None:
        """Remove all rows and the statement log. Useful for testing."""
        with self._lock:
            self._sessions.clear()
            self._entities.clear()
            self.executed.clear()
