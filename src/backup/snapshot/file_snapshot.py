"""
File-based snapshot storage.

Directory structure:
    {backups_dir}/{snapshot_name}/
        metadata.json
        users.json
        bankaccounts.json
        ...

One file per collection, each a JSON array of documents.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..collections import CollectionDescriptor
from ..core.exceptions import SnapshotExistsError, SnapshotNotFoundError
from ..store.base import Document
from .codec import read_documents, write_documents
from .catalog import SNAPSHOT_PREFIX
from .manifest import MANIFEST_FILE_NAME, SnapshotManifest

logger = logging.getLogger(__name__)


def _timestamp_from_name(name: str) -> str:
    if name.startswith(SNAPSHOT_PREFIX):
        return name[len(SNAPSHOT_PREFIX):]
    return name


class SnapshotWriter:
    """
    Writes collection files and the manifest into a snapshot directory.
    """

    def __init__(self, snapshot_dir: Path):
        """
        Initialize the snapshot writer and create its directory.

        Args:
            snapshot_dir: Directory of the snapshot being written; must not exist

        Raises:
            SnapshotExistsError: If the directory already exists
        """
        self.snapshot_dir = Path(snapshot_dir)
        self.counts: Dict[str, int] = {}

        self.snapshot_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.snapshot_dir.mkdir()
        except FileExistsError as e:
            raise SnapshotExistsError(
                f"Backup folder already exists: {self.snapshot_dir}", path=self.snapshot_dir
            ) from e

    def collection_path(self, name: str) -> Path:
        return self.snapshot_dir / f"{name}.json"

    def write_collection(self, name: str, documents: List[Document]) -> int:
        """
        Write one collection file.

        Returns:
            Number of documents written
        """
        count = write_documents(self.collection_path(name), documents)
        self.counts[name] = count
        return count

    @property
    def total_documents(self) -> int:
        return sum(self.counts.values())

    def write_manifest(
        self,
        timestamp: Optional[str] = None,
        mongodb_uri: Optional[str] = None,
    ) -> SnapshotManifest:
        """
        Write ``metadata.json`` for the collections written so far.

        The manifest total is the sum of the per-collection counts.
        """
        manifest = SnapshotManifest.create(
            timestamp=timestamp or _timestamp_from_name(self.snapshot_dir.name),
            counts=self.counts,
            mongodb_uri=mongodb_uri,
        )
        manifest.save(self.snapshot_dir / MANIFEST_FILE_NAME)
        return manifest


class SnapshotReader:
    """
    Reads collection files and the manifest from a snapshot directory.
    """

    def __init__(self, snapshot_dir: Path):
        """
        Initialize the snapshot reader.

        Args:
            snapshot_dir: Path to the snapshot directory

        Raises:
            SnapshotNotFoundError: If the directory does not exist
        """
        self.snapshot_dir = Path(snapshot_dir)
        if not self.snapshot_dir.is_dir():
            raise SnapshotNotFoundError(
                f"Backup folder not found: {self.snapshot_dir}", path=self.snapshot_dir
            )
        self._manifest: Optional[SnapshotManifest] = None
        self._manifest_loaded = False

    @property
    def manifest_path(self) -> Path:
        return self.snapshot_dir / MANIFEST_FILE_NAME

    def get_manifest(self) -> Optional[SnapshotManifest]:
        """
        Load the manifest if the snapshot has one.

        Returns:
            The manifest, or None when it is absent or unreadable
        """
        if self._manifest_loaded:
            return self._manifest

        self._manifest_loaded = True
        if not self.manifest_path.exists():
            logger.info(f"No manifest in {self.snapshot_dir}, continuing without summary")
            return None

        try:
            self._manifest = SnapshotManifest.load(self.manifest_path)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Ignoring unreadable manifest {self.manifest_path}: {e}")
            self._manifest = None
        return self._manifest

    def collection_path(self, name: str) -> Path:
        return self.snapshot_dir / f"{name}.json"

    def has_collection(self, name: str) -> bool:
        return self.collection_path(name).is_file()

    def read_collection(self, name: str) -> List[Document]:
        """
        Read every document of one collection file.

        Raises:
            FileNotFoundError: If the collection file is absent
            SnapshotFormatError: If the file content is unusable
        """
        return read_documents(self.collection_path(name))

    def available_collections(
        self, collections: Iterable[CollectionDescriptor]
    ) -> List[CollectionDescriptor]:
        """Return the descriptors that have a file in this snapshot."""
        return [c for c in collections if self.has_collection(c.name)]
