"""
Catalog of snapshots under the backups root.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..core.exceptions import SnapshotNotFoundError

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "backup-"
ARCHIVE_SUFFIX = ".zip"


def snapshot_timestamp(now: Optional[datetime] = None) -> str:
    """
    Timestamp used in snapshot names, e.g. ``2025-11-29T19-40-00``.

    UTC, second precision, colons replaced so the name is a valid
    directory name on every platform.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S")


def snapshot_name(now: Optional[datetime] = None) -> str:
    return f"{SNAPSHOT_PREFIX}{snapshot_timestamp(now)}"


class SnapshotCatalog:
    """
    Lists and resolves snapshot directories under a backups root.
    """

    def __init__(self, backups_dir: Path):
        self.backups_dir = Path(backups_dir)

    def exists(self) -> bool:
        return self.backups_dir.is_dir()

    def list_snapshots(self) -> List[str]:
        """
        Names of available snapshot directories, most recent first.

        Archives (``*.zip``) and entries without the snapshot prefix are
        excluded. A missing backups root yields an empty list.
        """
        if not self.exists():
            return []

        names = [
            entry.name
            for entry in self.backups_dir.iterdir()
            if entry.name.startswith(SNAPSHOT_PREFIX)
            and not entry.name.endswith(ARCHIVE_SUFFIX)
            and entry.is_dir()
        ]
        return sorted(names, reverse=True)

    def resolve(self, name: str) -> Path:
        """
        Resolve a snapshot name to its directory.

        Raises:
            SnapshotNotFoundError: If no such directory exists
        """
        path = self.backups_dir / name
        if not path.is_dir():
            raise SnapshotNotFoundError(f"Backup folder not found: {path}", path=path)
        return path

    def new_snapshot_dir(self, now: Optional[datetime] = None) -> Path:
        """Path for a new timestamped snapshot (not created)."""
        return self.backups_dir / snapshot_name(now)

    def latest(self) -> Optional[Path]:
        """Directory of the most recent snapshot, if any."""
        names = self.list_snapshots()
        if not names:
            return None
        return self.backups_dir / names[0]
