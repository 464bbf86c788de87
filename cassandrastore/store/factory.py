"""
Factory for creating stores.
Provides a centralized way to pick a database backend and build the
session and metadata stores on top of it.
"""

from typing import Any, Callable, Dict, Mapping, Optional
from dataclasses import dataclass, field

from ..core.config import CassandraConfig, SESSION_PREFIX, METADATA_PREFIX
from ..db.client import connect_from_config
from ..db.memory import MemoryClient
from ..errors import ErrorCode, PreconditionViolation
from ..metadata.store import CassandraMetadataStore
from ..metrics import StoreMetrics
from ..util.config import flatten_config
from .session import CassandraStore
from .types import DatabaseClient


@dataclass
class StorageConfig:
    """Configuration for a store backend."""
    backend: str = "cassandra"
    cassandra: CassandraConfig = field(default_factory=CassandraConfig)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], prefix: str = SESSION_PREFIX) -> "StorageConfig":
        """Read ``<prefix>.backend`` and the cluster settings under prefix."""
        flat = flatten_config(dict(mapping))
        return cls(
            backend=str(flat.get(f"{prefix}.backend", "cassandra")),
            cassandra=CassandraConfig.from_mapping(mapping, prefix),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'backend': self.backend,
            'cassandra': self.cassandra.to_dict(),
        }


ClientFactory = Callable[[CassandraConfig], DatabaseClient]

# Registry of available database backends
_CLIENT_FACTORIES: Dict[str, ClientFactory] = {
    'cassandra': connect_from_config,
    'memory': lambda config: MemoryClient(),
}


class StorageFactory:
    """Factory for creating database clients and stores."""

    @staticmethod
    def create_client(config: StorageConfig) -> DatabaseClient:
        """
        Create a database client for the configured backend.

        Raises:
            PreconditionViolation: If the backend is not registered
        """
        factory = _CLIENT_FACTORIES.get(config.backend.lower())
        if not factory:
            raise PreconditionViolation(
                f"Unsupported storage backend: {config.backend}",
                field="backend",
                code=ErrorCode.CONFIGURATION_ERROR,
            )
        return factory(config.cassandra)

    @staticmethod
    def register_client_factory(name: str, factory: ClientFactory) -> None:
        """
        Register a new database backend.

        Args:
            name: Name to register the backend under
            factory: Callable building a client from cluster settings
        """
        _CLIENT_FACTORIES[name.lower()] = factory

    @staticmethod
    def get_available_backends() -> list:
        """Get list of available backends."""
        return list(_CLIENT_FACTORIES.keys())


def register_client_factory(name: str, factory: ClientFactory) -> None:
    """Convenience wrapper for StorageFactory.register_client_factory."""
    StorageFactory.register_client_factory(name, factory)


def create_session_store(config: StorageConfig,
                         client: Optional[DatabaseClient] = None,
                         metrics: Optional[StoreMetrics] = None) -> CassandraStore:
    """
    Create a session store from configuration.

    Args:
        config: Storage configuration
        client: Use this client instead of creating one

    Returns:
        CassandraStore instance
    """
    if client is None:
        client = StorageFactory.create_client(config)
    return CassandraStore(client=client, config=config.cassandra, metrics=metrics)


def create_metadata_store(config: StorageConfig,
                          client: Optional[DatabaseClient] = None,
                          metrics: Optional[StoreMetrics] = None) -> CassandraMetadataStore:
    """
    Create a metadata store from configuration.

    Args:
        config: Storage configuration
        client: Use this client instead of creating one

    Returns:
        CassandraMetadataStore instance
    """
    if client is None:
        client = StorageFactory.create_client(config)
    return CassandraMetadataStore(client=client, config=config.cassandra, metrics=metrics)


def create_stores_from_mapping(mapping: Mapping[str, Any],
                               metrics: Optional[StoreMetrics] = None):
    """
    Create both stores from one host configuration.

    The session store reads ``store.cassandra.*`` and the metadata store
    ``metastore.cassandra.*``; each gets its own connection.
    """
    session_store = create_session_store(
        StorageConfig.from_mapping(mapping, SESSION_PREFIX), metrics=metrics
    )
    metadata_store = create_metadata_store(
        StorageConfig.from_mapping(mapping, METADATA_PREFIX), metrics=metrics
    )
    return session_store, metadata_store
