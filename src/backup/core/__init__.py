"""
Core building blocks shared by the backup tooling.
"""

from .exceptions import (
    BackupError,
    ConfigError,
    RestoreCancelled,
    SnapshotExistsError,
    SnapshotFormatError,
    SnapshotNotFoundError,
    StoreConnectionError,
    StoreOperationError,
    UnknownCollectionError,
)
from .logging import configure_logging

__all__ = [
    "BackupError",
    "ConfigError",
    "RestoreCancelled",
    "SnapshotExistsError",
    "SnapshotFormatError",
    "SnapshotNotFoundError",
    "StoreConnectionError",
    "StoreOperationError",
    "UnknownCollectionError",
    "configure_logging",
]
