"""
Snapshot module for MongoDB ⇄ directory data interchange.

This module provides:
- Collection file codec (Extended JSON arrays)
- Snapshot manifest (metadata.json)
- Snapshot writer/reader over the directory layout
- Catalog of snapshots under a backups root
- Exchanger: export, restore and purge with per-collection reports
- Pack/unpack: zip archives with optional encryption
"""

from .catalog import SnapshotCatalog, snapshot_name
from .confirmation import DestructivePlan, always_confirm, countdown_confirmation
from .exchanger import (
    CollectionOutcome,
    ExchangeReport,
    Operation,
    OutcomeStatus,
    SnapshotExchanger,
)
from .file_snapshot import SnapshotReader, SnapshotWriter
from .manifest import SnapshotManifest
from .pack import SnapshotPacker, SnapshotUnpacker, get_encryption_key

__all__ = [
    "CollectionOutcome",
    "DestructivePlan",
    "ExchangeReport",
    "Operation",
    "OutcomeStatus",
    "SnapshotCatalog",
    "SnapshotExchanger",
    "SnapshotManifest",
    "SnapshotPacker",
    "SnapshotReader",
    "SnapshotUnpacker",
    "SnapshotWriter",
    "always_confirm",
    "countdown_confirmation",
    "get_encryption_key",
    "snapshot_name",
]
