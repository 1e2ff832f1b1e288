"""
Manifest handling for snapshots.

Every snapshot directory carries a ``metadata.json`` summarizing when it
was taken and what it holds. The field names are camelCase because the
application's own Node tooling reads and writes the same file.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "metadata.json"

_KNOWN_KEYS = {"timestamp", "date", "totalDocuments", "collections", "counts", "mongodbUri"}


@dataclass
class SnapshotManifest:
    """
    Manifest for a snapshot directory.

    Attributes:
        timestamp: Timestamp component of the snapshot directory name
        date: When the snapshot was taken
        total_documents: Sum of per-collection document counts
        collections: Names of the collections written
        counts: Document count per collection
        mongodb_uri: Source connection string, password masked
        extra: Unrecognized fields, preserved on save
    """
    timestamp: Optional[str] = None
    date: Optional[datetime] = None
    total_documents: Optional[int] = None
    collections: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    mongodb_uri: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        timestamp: str,
        counts: Dict[str, int],
        mongodb_uri: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> "SnapshotManifest":
        """Create a manifest whose total is derived from ``counts``."""
        return cls(
            timestamp=timestamp,
            date=date or datetime.now(timezone.utc),
            total_documents=sum(counts.values()),
            collections=list(counts),
            counts=dict(counts),
            mongodb_uri=mongodb_uri,
        )

    @property
    def collection_count(self) -> int:
        return len(self.collections)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = dict(self.extra)
        data.update({
            "timestamp": self.timestamp,
            "date": self.date.isoformat() if self.date else None,
            "totalDocuments": self.total_documents,
            "collections": self.collections,
            "counts": self.counts,
            "mongodbUri": self.mongodb_uri,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnapshotManifest":
        """
        Create from dictionary.

        Raises:
            ValueError: If a known field has the wrong shape
        """
        collections = data.get("collections") or []
        counts = data.get("counts") or {}
        if not isinstance(collections, list):
            raise ValueError(
                f"Manifest 'collections' must be a list, got {type(collections).__name__}"
            )
        if not isinstance(counts, dict):
            raise ValueError(
                f"Manifest 'counts' must be an object, got {type(counts).__name__}"
            )

        try:
            date = data.get("date")
            if isinstance(date, str):
                date = datetime.fromisoformat(date.replace("Z", "+00:00"))
            elif date is not None:
                raise ValueError(f"Manifest 'date' must be a string, got {type(date).__name__}")
            total = data.get("totalDocuments")
            total = int(total) if total is not None else None
            counts = {str(k): int(v) for k, v in counts.items()}
        except TypeError as e:
            raise ValueError(f"Malformed manifest: {e}") from e

        return cls(
            timestamp=data.get("timestamp"),
            date=date,
            total_documents=total,
            collections=[str(c) for c in collections],
            counts=counts,
            mongodb_uri=data.get("mongodbUri"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def summary_lines(self) -> List[str]:
        """Lines describing the snapshot for operator confirmation."""
        date = self.date.isoformat() if self.date else "unknown"
        total = self.total_documents if self.total_documents is not None else "unknown"
        return [
            f"Date: {date}",
            f"Total Documents: {total}",
            f"Collections: {self.collection_count}",
        ]

    def save(self, path: Path) -> None:
        """Save manifest to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved manifest to: {path}")

    @classmethod
    def load(cls, path: Path) -> "SnapshotManifest":
        """Load manifest from JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Manifest must be a JSON object: {path}")

        manifest = cls.from_dict(data)
        logger.debug(f"Loaded manifest from: {path}")
        return manifest
