"""
Schema management for the session and entities tables.
"""

import logging
import re

from . import queries
from ..errors import PreconditionViolation


logger = logging.getLogger(__name__)


_KEYSPACE_NAME = re.compile(r'^[A-Za-z0-9_]{1,48}$')


def create_keyspace(client, keyspace: str, replication_factor: int = 3) -> None:
    """Create the keyspace with SimpleStrategy replication if it does not exist."""
    if not _KEYSPACE_NAME.match(keyspace):
        raise PreconditionViolation(f"Invalid keyspace name: {keyspace!r}", field="keyspace")
    if replication_factor < 1:
        raise PreconditionViolation("replication_factor must be at least 1", field="replication_factor")

    client.execute(queries.CREATE_KEYSPACE.format(
        keyspace=keyspace, replication_factor=int(replication_factor)
    ))
    logger.info(f"Ensured keyspace {keyspace} (replication factor {replication_factor})")


def create_tables(client) -> None:
    """Create the session and entities tables if they do not exist."""
    client.execute(queries.CREATE_SESSION_TABLE)
    client.execute(queries.CREATE_ENTITIES_TABLE)
    logger.info("Ensured session and entities tables")
