"""
Storage types and interfaces for the Cassandra storage layer.
Defines the store abstractions the host application programs against.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..core.types import Consistency


Row = Dict[str, Any]


class DatabaseClient(Protocol):
    """A connection to the cluster able to run the fixed statements."""

    def execute(self, query: str, params: Optional[Mapping[str, Any]] = None,
                consistency: Optional[Consistency] = None) -> List[Row]:
        ...

    def close(self) -> None:
        ...


class Store(ABC):
    """Abstract base class for key-value session stores."""

    @abstractmethod
    def get(self, type: str, key: str) -> Any:
        """
        Retrieve a value from the store.

        Args:
            type: The data type
            key: The key

        Returns:
            The stored value, or None if there is none
        """
        pass

    @abstractmethod
    def set(self, type: str, key: str, value: Any, expire: Optional[Any] = None) -> None:
        """
        Save a value to the store.

        Args:
            type: The data type
            key: The key
            value: The value
            expire: Absolute expiry time, or None if it never expires
        """
        pass

    @abstractmethod
    def delete(self, type: str, key: str) -> None:
        """
        Delete a value from the store.

        Args:
            type: The data type
            key: The key
        """
        pass


class MetadataStorageSource(ABC):
    """Abstract base class for sources of SAML metadata sets."""

    @abstractmethod
    def get_metadata_set(self, set_name: str) -> Dict[str, Dict[str, Any]]:
        """
        Retrieve the given set of metadata.

        Returns:
            A mapping of entity id to metadata; empty if the set is unknown
        """
        pass

    @abstractmethod
    def get_metadata(self, entity_id: str, set_name: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve metadata for one entity in the given set.

        Returns:
            The metadata, or None if the entity cannot be located
        """
        pass

    def get_metadata_for_entities(self, entity_ids: List[str],
                                  set_name: str) -> Dict[str, Dict[str, Any]]:
        """
        Retrieve metadata for several entities.
        Default implementation looks them up one by one.
        """
        result = {}
        for entity_id in entity_ids:
            metadata = self.get_metadata(entity_id, set_name)
            if metadata is not None:
                result[entity_id] = metadata
        return result
