# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
Package store provides the storage abstractions and the Cassandra
session store.

This package implements:
- The Store and MetadataStorageSource interfaces
- Statement execution shared by all Cassandra-backed stores
- The session key-value store with TTL support
"""

from .types import (
    # Core storage types
    Store,
    MetadataStorageSource,
    DatabaseClient,
    Consistency,
)

from .base import QueryExecutor

from .session import (
    # Session store implementation
    CassandraStore,
    MIN_EXPIRE,
)

__all__ = [
    # Core types
    'Store',
    'MetadataStorageSource',
    'DatabaseClient',
    'Consistency',

    # Implementations
    'QueryExecutor',
    'CassandraStore',
    'MIN_EXPIRE',
]
