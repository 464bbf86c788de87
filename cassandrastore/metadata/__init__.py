# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.


"""
Federation metadata storage.

Entities describing remote identity and service providers, organized by
feed, with soft delete and a per-store cache of materialized metadata
sets.
"""

from .cache import MetadataSetCache
from .store import (
    CassandraMetadataStore,
    decode_entity_row,
    is_hidden_from_discovery,
    HIDE_FROM_DISCOVERY,
    ENTITY_CATEGORY,
)

__all__ = [
    'MetadataSetCache',
    'CassandraMetadataStore',
    'decode_entity_row',
    'is_hidden_from_discovery',
    'HIDE_FROM_DISCOVERY',
    'ENTITY_CATEGORY',
]
