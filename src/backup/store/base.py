"""
Document store interface used by the snapshot exchanger.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence


Document = Dict[str, Any]


class DocumentStore(ABC):
    """
    Abstract base class for live document stores.

    A store holds named collections of schema-less documents. The
    exchanger only ever reads whole collections, truncates them and
    bulk-inserts into them.
    """

    @abstractmethod
    def list_collection_names(self) -> List[str]:
        """Return the names of collections that exist in the store."""
        pass

    def has_collection(self, name: str) -> bool:
        """Return True if the collection exists."""
        return name in self.list_collection_names()

    @abstractmethod
    def find_all(self, name: str) -> List[Document]:
        """
        Read every document of a collection.

        Returns:
            Documents in natural order (empty list for a missing collection)
        """
        pass

    @abstractmethod
    def delete_all(self, name: str) -> int:
        """
        Delete every document of a collection.

        Returns:
            Number of documents deleted
        """
        pass

    @abstractmethod
    def insert_many(self, name: str, documents: Sequence[Document]) -> int:
        """
        Insert documents verbatim, keeping any ``_id`` they carry.

        Returns:
            Number of documents inserted
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the store name/identifier for logging."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass

    def __enter__(self) -> "DocumentStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()
