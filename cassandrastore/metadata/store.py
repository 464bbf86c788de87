"""
A Cassandra datastore for federation metadata.

Entities are stored per feed in the ``entities`` table. Removing an
entity from a feed normally means soft deleting it: the row is kept with
``enabled`` set to false and every public read path except the
registration authority view treats it as absent.
"""

import logging
from typing import Any, Dict, Optional

from ..core.config import CassandraConfig, METADATA_PREFIX
from ..core.types import Consistency, DEFAULT_FEED, IDP_REMOTE_SET
from ..db import queries
from ..db.client import connect_from_config
from ..errors import PreconditionViolation, require_string
from ..metrics import StoreMetrics
from ..store.base import QueryExecutor
from ..store.types import DatabaseClient, MetadataStorageSource
from ..util.encoding import decode_json_column, encode_json_column, to_epoch
from .cache import MetadataSetCache


logger = logging.getLogger(__name__)


ENTITY_CATEGORY = "http://macedir.org/entity-category"
HIDE_FROM_DISCOVERY = "http://refeds.org/category/hide-from-discovery"


def is_hidden_from_discovery(metadata: Any) -> bool:
    """
    Check whether entity metadata asks to be left out of discovery.

    Both the ``hide.from.discovery`` flag and the REFEDS entity category
    are honored.
    """
    if not isinstance(metadata, dict):
        return False
    if metadata.get("hide.from.discovery"):
        return True

    attributes = metadata.get("EntityAttributes")
    if not isinstance(attributes, dict):
        return False
    categories = attributes.get(ENTITY_CATEGORY) or []
    if isinstance(categories, str):
        categories = [categories]
    return HIDE_FROM_DISCOVERY in categories


def decode_entity_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the JSON columns and timestamps of an entities row."""
    decoded = dict(row)
    for column in ("metadata", "uimeta", "verification"):
        if column in decoded:
            decoded[column] = decode_json_column(decoded[column])
    decoded["created"] = to_epoch(decoded.get("created"))
    decoded["updated"] = to_epoch(decoded.get("updated"))
    return decoded


class CassandraMetadataStore(QueryExecutor, MetadataStorageSource):
    """
    Metadata store backed by the ``entities`` table.

    The identity provider set handed to the host application is built
    from the edugain feed and cached per store instance.
    """

    store_name = "metadata"

    def __init__(self, client: Optional[DatabaseClient] = None,
                 config: Optional[CassandraConfig] = None,
                 metrics: Optional[StoreMetrics] = None,
                 cache: Optional[MetadataSetCache] = None):
        if config is None and client is None:
            config = CassandraConfig.from_env()
        if client is None:
            client = connect_from_config(config)

        super().__init__(client, metrics)
        self.config = config
        self.cache = cache or MetadataSetCache(self.metrics)

    @classmethod
    def from_mapping(cls, mapping, **kwargs) -> "CassandraMetadataStore":
        """Create a store from ``metastore.cassandra.*`` configuration keys."""
        return cls(config=CassandraConfig.from_mapping(mapping, METADATA_PREFIX), **kwargs)

    def get_metadata_set(self, set_name: str) -> Dict[str, Dict[str, Any]]:
        """
        Retrieve the given set of metadata.

        Only the identity provider set is backed by storage; any other
        set is empty.

        Returns:
            A mapping of entity id to metadata
        """
        # Unsupported names never reach the cache or its metric labels
        if set_name != IDP_REMOTE_SET:
            return {}
        return self.cache.get_or_load(set_name, self._load_metadata_set)

    def _load_metadata_set(self) -> Dict[str, Dict[str, Any]]:
        metadata_set = {}
        for entity_id, entity in self.get_feed(DEFAULT_FEED).items():
            metadata = entity.get("metadata")
            if entity.get("enabled") and isinstance(metadata, dict):
                metadata["entityid"] = entity_id
                metadata_set[entity_id] = metadata
        return metadata_set

    def get_metadata(self, entity_id: str, set_name: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve metadata for the given entity id in the given set.

        Returns:
            The metadata, or None if the set is not supported or the
            entity cannot be located
        """
        if set_name != IDP_REMOTE_SET:
            return None
        return self.get_entity(DEFAULT_FEED, entity_id)

    def get_entity(self, feed: str, entity_id: str) -> Optional[Dict[str, Any]]:
        """Return the metadata of an enabled entity, or None."""
        require_string(feed, "feed", "get_entity")
        require_string(entity_id, "entity_id", "get_entity")

        params = {'feed': feed, 'entityid': entity_id}
        rows = self._execute("get_entity", queries.ENTITY_SELECT, params, Consistency.QUORUM)
        if not rows:
            return None

        row = decode_entity_row(rows[0])
        if not row.get("enabled"):
            return None
        return row["metadata"]

    def get_logo(self, feed: str, entity_id: str) -> Optional[Dict[str, Any]]:
        """Return the enabled flag and logo columns of an entity, or None."""
        require_string(feed, "feed", "get_logo")
        require_string(entity_id, "entity_id", "get_logo")

        params = {'feed': feed, 'entityid': entity_id}
        rows = self._execute("get_logo", queries.LOGO_SELECT, params, Consistency.QUORUM)
        if not rows:
            return None
        return dict(rows[0])

    def get_feed(self, feed: str) -> Dict[str, Dict[str, Any]]:
        """
        Return every enabled entity of a feed, keyed by entity id.

        The feed is read with a filtering scan, which is only acceptable
        because feeds hold a bounded number of entities.
        """
        require_string(feed, "feed", "get_feed")

        rows = self._execute("get_feed", queries.FEED_SELECT, {'feed': feed}, Consistency.QUORUM)
        result = {}
        for row in rows:
            if not row.get("enabled"):
                continue
            decoded = decode_entity_row(row)
            result[decoded["entityid"]] = decoded
        return result

    def get_reg_auth_ui(self, feed: str, registration_authority: Optional[str],
                        exclude_hidden: bool = False) -> Dict[str, Dict[str, Any]]:
        """
        Return the entities of a feed registered by one authority.

        This is an administrative view: soft deleted entities are included
        so that they can be inspected and restored.

        Args:
            feed: The feed to list
            registration_authority: Only rows whose ``reg`` equals this are kept
            exclude_hidden: Skip entities hidden from discovery
        """
        require_string(feed, "feed", "get_reg_auth_ui")

        rows = self._execute("get_reg_auth_ui", queries.REG_AUTH_SELECT, {'feed': feed},
                             Consistency.QUORUM)
        result = {}
        for row in rows:
            if row.get("reg") != registration_authority:
                continue

            metadata = row.get("metadata")
            if exclude_hidden and is_hidden_from_discovery(decode_json_column(metadata)):
                continue

            decoded = decode_entity_row({k: v for k, v in row.items() if k != "metadata"})
            result[decoded["entityid"]] = decoded
        return result

    def insert(self, feed: str, entity_id: str, metadata: Dict[str, Any],
               ui_metadata: Any, registration_authority: Optional[str],
               is_update: bool = False) -> None:
        """
        Store an entity and mark it enabled.

        The write timestamp goes to ``created`` for a new entity and to
        ``updated`` when is_update is set. Callers must pass is_update for
        entities that already exist, otherwise ``created`` is overwritten.

        Raises:
            PreconditionViolation: If metadata is not a mapping
        """
        require_string(feed, "feed", "insert")
        require_string(entity_id, "entity_id", "insert")
        if not isinstance(metadata, dict):
            raise PreconditionViolation(
                f"metadata must be a dict, got {type(metadata).__name__}",
                field="metadata",
                operation="insert",
            )

        params = {
            'feed': feed,
            'entityid': entity_id,
            'metadata': encode_json_column(metadata),
            'uimeta': encode_json_column(ui_metadata),
            'reg': registration_authority,
            'enabled': True,
        }
        query = queries.ENTITY_INSERT_UPDATED if is_update else queries.ENTITY_INSERT_CREATED
        self._execute("insert", query, params, Consistency.QUORUM)
        logger.info(f"{'Updated' if is_update else 'Inserted'} entity {entity_id} in feed {feed}")

    def soft_delete(self, feed: str, entity_id: str) -> None:
        """Disable an entity, keeping its row and metadata."""
        require_string(feed, "feed", "soft_delete")
        require_string(entity_id, "entity_id", "soft_delete")

        params = {'feed': feed, 'entityid': entity_id, 'enabled': False}
        self._execute("soft_delete", queries.ENTITY_SOFT_DELETE, params, Consistency.QUORUM)
        logger.info(f"Disabled entity {entity_id} in feed {feed}")

    def delete(self, feed: str, entity_id: str) -> None:
        """Remove an entity row entirely."""
        require_string(feed, "feed", "delete")
        require_string(entity_id, "entity_id", "delete")

        params = {'feed': feed, 'entityid': entity_id}
        self._execute("delete", queries.ENTITY_DELETE, params, Consistency.QUORUM)
        logger.info(f"Deleted entity {entity_id} from feed {feed}")
