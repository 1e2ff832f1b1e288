"""
Live document stores the snapshot exchanger reads from and restores into.
"""

from .base import Document, DocumentStore
from .memory_store import MemoryStore
from .mongo_store import MongoStore

__all__ = ["Document", "DocumentStore", "MemoryStore", "MongoStore"]
