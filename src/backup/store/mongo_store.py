"""
MongoDB live store.

Wraps a single pymongo client that is opened once per run and closed once
at the end.
"""

import logging
from typing import List, Optional, Sequence

from pymongo import MongoClient
from pymongo.errors import ConfigurationError, PyMongoError

from ..config import BackupConfig, mask_uri
from ..core.exceptions import StoreConnectionError, StoreOperationError
from .base import Document, DocumentStore

logger = logging.getLogger(__name__)


class MongoStore(DocumentStore):
    """
    MongoDB implementation of DocumentStore.

    The connection is verified with a ``ping`` on construction so that an
    unreachable server is reported before any snapshot work starts. Dates
    are read back timezone-aware (UTC), matching the snapshot files.
    """

    def __init__(
        self,
        uri: str,
        database: Optional[str] = None,
        server_selection_timeout_ms: int = 5000,
        client: Optional[MongoClient] = None,
    ):
        """
        Initialize the store and connect.

        Args:
            uri: MongoDB connection string
            database: Database name (default: the one named in the URI)
            server_selection_timeout_ms: Driver server selection timeout
            client: Pre-built client (mainly for tests)

        Raises:
            StoreConnectionError: If the server cannot be reached
        """
        self.uri = uri
        self.database_name = database
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client = client
        self.db = None
        self._connect()

    @classmethod
    def from_config(cls, config: BackupConfig) -> "MongoStore":
        """Create a store from a BackupConfig."""
        return cls(
            uri=config.mongodb_uri,
            database=config.database,
            server_selection_timeout_ms=config.server_selection_timeout_ms,
        )

    def _connect(self) -> None:
        """Establish the client connection and select the database."""
        masked = mask_uri(self.uri)
        try:
            if self.client is None:
                self.client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    tz_aware=True,
                )
            self.client.admin.command("ping")
            if self.database_name:
                self.db = self.client[self.database_name]
            else:
                self.db = self.client.get_default_database()
        except ConfigurationError as e:
            self.close()
            raise StoreConnectionError(
                f"No database selected for {masked}: {e}", uri=masked
            ) from e
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB at {masked}: {e}")
            self.close()
            raise StoreConnectionError(
                f"Failed to connect to MongoDB at {masked}: {e}", uri=masked
            ) from e

        self.database_name = self.db.name
        logger.info(f"Connected to MongoDB database '{self.database_name}'")

    def list_collection_names(self) -> List[str]:
        try:
            return self.db.list_collection_names()
        except PyMongoError as e:
            raise StoreOperationError(f"Failed to list collections: {e}") from e

    def has_collection(self, name: str) -> bool:
        try:
            return bool(self.db.list_collection_names(filter={"name": name}))
        except PyMongoError as e:
            raise StoreOperationError(
                f"Failed to look up collection: {e}", collection=name
            ) from e

    def find_all(self, name: str) -> List[Document]:
        try:
            return list(self.db[name].find({}))
        except PyMongoError as e:
            raise StoreOperationError(f"Failed to read documents: {e}", collection=name) from e

    def delete_all(self, name: str) -> int:
        try:
            result = self.db[name].delete_many({})
        except PyMongoError as e:
            raise StoreOperationError(f"Failed to delete documents: {e}", collection=name) from e
        return result.deleted_count

    def insert_many(self, name: str, documents: Sequence[Document]) -> int:
        if not documents:
            return 0
        try:
            result = self.db[name].insert_many(list(documents))
        except PyMongoError as e:
            raise StoreOperationError(f"Failed to insert documents: {e}", collection=name) from e
        return len(result.inserted_ids)

    def get_name(self) -> str:
        return f"mongodb:{self.database_name}"

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")
