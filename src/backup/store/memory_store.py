"""
In-process document store.

Holds collections as plain lists of documents. Used for dry runs of the
exchanger wiring and as a deterministic stand-in for MongoDB in tests.
"""

import copy
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .base import Document, DocumentStore

logger = logging.getLogger(__name__)


class MemoryStore(DocumentStore):
    """
    DocumentStore backed by a dictionary of lists.

    Documents are deep-copied on the way in and on the way out, so callers
    can never alias the stored state.
    """

    def __init__(self, initial: Optional[Mapping[str, Sequence[Document]]] = None):
        self._collections: Dict[str, List[Document]] = {}
        self.closed = False
        for name, documents in (initial or {}).items():
            self._collections[name] = copy.deepcopy(list(documents))

    def list_collection_names(self) -> List[str]:
        return sorted(self._collections)

    def find_all(self, name: str) -> List[Document]:
        return copy.deepcopy(self._collections.get(name, []))

    def delete_all(self, name: str) -> int:
        documents = self._collections.get(name)
        if documents is None:
            return 0
        deleted = len(documents)
        documents.clear()
        return deleted

    def insert_many(self, name: str, documents: Sequence[Document]) -> int:
        target = self._collections.setdefault(name, [])
        target.extend(copy.deepcopy(list(documents)))
        logger.debug(f"Inserted {len(documents)} documents into {name}")
        return len(documents)

    def get_name(self) -> str:
        return "memory"

    def close(self) -> None:
        self.closed = True
