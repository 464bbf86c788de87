# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
cassandrastore

Cassandra-backed session and federation metadata storage for SAML
identity infrastructure.
"""

__version__ = "0.1.0"

from .core.config import CassandraConfig
from .core.types import Consistency, DEFAULT_FEED, IDP_REMOTE_SET
from .errors import (
    StoreError,
    StorageError,
    TransientStorageError,
    DecodeError,
    PreconditionViolation,
)
from .store import CassandraStore, Store, MetadataStorageSource
from .metadata import CassandraMetadataStore, MetadataSetCache
from .store.factory import (
    StorageConfig,
    create_session_store,
    create_metadata_store,
    create_stores_from_mapping,
)
from .db import MemoryClient, connect, connect_from_config

__all__ = [
    "CassandraConfig",
    "Consistency",
    "DEFAULT_FEED",
    "IDP_REMOTE_SET",
    "StoreError",
    "StorageError",
    "TransientStorageError",
    "DecodeError",
    "PreconditionViolation",
    "CassandraStore",
    "Store",
    "MetadataStorageSource",
    "CassandraMetadataStore",
    "MetadataSetCache",
    "StorageConfig",
    "create_session_store",
    "create_metadata_store",
    "create_stores_from_mapping",
    "MemoryClient",
    "connect",
    "connect_from_config",
]
