# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
Database access for the Cassandra storage layer.

This package provides:
- The cassandra-driver backed client and connection bootstrap
- The fixed statements issued by the stores
- An in-memory client for development and testing
- Schema creation helpers
"""

from .client import CassandraClient, TLSConfig, connect, connect_from_config, parse_nodes
from .memory import MemoryClient
from .schema import create_keyspace, create_tables

__all__ = [
    'CassandraClient',
    'TLSConfig',
    'connect',
    'connect_from_config',
    'parse_nodes',
    'MemoryClient',
    'create_keyspace',
    'create_tables',
]
