"""
Snapshot exchanger: export the live store to a snapshot directory, and
restore a snapshot directory into the live store.

Collections are processed one at a time in registry order. A failure in
one collection is logged and recorded in the report; it never stops the
run, so a partially restored store is a possible outcome.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..collections import COLLECTIONS, CollectionDescriptor, purgeable_collections
from ..core.exceptions import RestoreCancelled
from ..core.logging import collection_extra
from ..store.base import DocumentStore
from .confirmation import ConfirmFn, DestructivePlan
from .file_snapshot import SnapshotReader, SnapshotWriter
from .manifest import SnapshotManifest

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Kind of exchange run."""
    EXPORT = "export"
    RESTORE = "restore"
    PURGE = "purge"


class OutcomeStatus(str, Enum):
    """What happened to one collection."""
    EXPORTED = "exported"
    RESTORED = "restored"
    PURGED = "purged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class CollectionOutcome:
    """Result for a single collection."""
    collection: str
    status: OutcomeStatus
    documents: int = 0
    note: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "status": self.status.value,
            "documents": self.documents,
            "note": self.note,
            "error": self.error,
        }


@dataclass
class ExchangeReport:
    """Report of an export, restore or purge run."""
    operation: Operation
    dry_run: bool
    started_at: datetime
    snapshot_dir: Optional[Path] = None
    completed_at: Optional[datetime] = None
    outcomes: List[CollectionOutcome] = field(default_factory=list)
    manifest: Optional[SnapshotManifest] = None
    archive_path: Optional[Path] = None

    def add(self, outcome: CollectionOutcome) -> None:
        self.outcomes.append(outcome)

    def outcome_for(self, collection: str) -> Optional[CollectionOutcome]:
        for outcome in self.outcomes:
            if outcome.collection == collection:
                return outcome
        return None

    @property
    def total_documents(self) -> int:
        """Documents exported, restored or deleted (failed/skipped excluded)."""
        return sum(
            o.documents for o in self.outcomes
            if o.status not in (OutcomeStatus.SKIPPED, OutcomeStatus.FAILED)
        )

    @property
    def counts(self) -> Dict[str, int]:
        return {
            o.collection: o.documents for o in self.outcomes
            if o.status not in (OutcomeStatus.SKIPPED, OutcomeStatus.FAILED)
        }

    @property
    def errors(self) -> List[str]:
        return [
            f"{o.collection}: {o.error}" for o in self.outcomes
            if o.status == OutcomeStatus.FAILED
        ]

    @property
    def skipped(self) -> List[str]:
        return [o.collection for o in self.outcomes if o.status == OutcomeStatus.SKIPPED]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "operation": self.operation.value,
            "dry_run": self.dry_run,
            "snapshot_dir": str(self.snapshot_dir) if self.snapshot_dir else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_documents": self.total_documents,
            "collections": [o.to_dict() for o in self.outcomes],
            "errors": self.errors,
            "manifest": self.manifest.to_dict() if self.manifest else None,
            "archive_path": str(self.archive_path) if self.archive_path else None,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        verb = {
            Operation.EXPORT: "backed up",
            Operation.RESTORE: "restored",
            Operation.PURGE: "deleted",
        }[self.operation]
        lines = [
            f"{self.operation.value.capitalize()} Report",
            f"  Dry run: {self.dry_run}",
        ]
        if self.completed_at:
            duration = (self.completed_at - self.started_at).total_seconds()
            lines.append(f"  Duration: {duration:.1f}s")
        if self.snapshot_dir:
            lines.append(f"  Snapshot: {self.snapshot_dir}")
        if self.archive_path:
            lines.append(f"  Archive: {self.archive_path}")
        lines.append("")
        for o in self.outcomes:
            if o.status == OutcomeStatus.FAILED:
                detail = f"Error: {o.error}"
            elif o.status == OutcomeStatus.SKIPPED:
                detail = f"skipped ({o.note})" if o.note else "skipped"
            else:
                detail = f"{o.documents} documents"
            lines.append(f"  {o.collection:<20} - {detail}")
        lines.extend([
            "",
            f"  Total documents {verb}: {self.total_documents}",
            f"  Errors: {len(self.errors)}",
        ])
        return "\n".join(lines)


class SnapshotExchanger:
    """
    Moves whole collections between a live DocumentStore and a snapshot
    directory.

    Supports:
    - Export (store → snapshot directory + manifest)
    - Restore (snapshot directory → store, truncate then insert)
    - Purge (truncate every non-preserved collection)
    - Dry-run mode for all three
    """

    def __init__(
        self,
        store: DocumentStore,
        collections: Iterable[CollectionDescriptor] = COLLECTIONS,
        confirm: Optional[ConfirmFn] = None,
    ):
        """
        Initialize the exchanger.

        Args:
            store: Live store; the caller opens and closes it
            collections: Descriptors to process, in order
            confirm: Gate called before the first destructive operation
                (None: no gate)
        """
        self.store = store
        self.collections = tuple(collections)
        self.confirm = confirm

    def _require_confirmation(self, plan: DestructivePlan) -> None:
        if self.confirm is None:
            return
        operation = plan.operation.capitalize()
        try:
            confirmed = self.confirm(plan)
        except KeyboardInterrupt:
            raise RestoreCancelled(
                f"{operation} interrupted before any change", interrupted=True
            ) from None
        if not confirmed:
            raise RestoreCancelled(f"{operation} cancelled by operator")

    def export_snapshot(
        self,
        snapshot_dir: Path,
        mongodb_uri: Optional[str] = None,
        dry_run: bool = False,
    ) -> ExchangeReport:
        """
        Export every registered collection into a snapshot directory.

        Collections missing from the store are skipped. The manifest is
        written last and totals only the collections actually written.

        Args:
            snapshot_dir: Directory to create; must not exist yet
            mongodb_uri: Masked connection string recorded in the manifest
            dry_run: Read and count without writing anything

        Returns:
            ExchangeReport with results

        Raises:
            SnapshotExistsError: If the directory already exists
        """
        snapshot_dir = Path(snapshot_dir)
        report = ExchangeReport(
            operation=Operation.EXPORT,
            dry_run=dry_run,
            started_at=datetime.now(timezone.utc),
            snapshot_dir=snapshot_dir,
        )

        writer = None if dry_run else SnapshotWriter(snapshot_dir)
        logger.info(f"Backup folder: {snapshot_dir}")

        for descriptor in self.collections:
            name = descriptor.name
            extra = collection_extra(name, Operation.EXPORT.value)
            try:
                if not self.store.has_collection(name):
                    logger.warning(f"{name:<20} - Collection not found, skipping", extra=extra)
                    report.add(CollectionOutcome(
                        name, OutcomeStatus.SKIPPED, note="collection not found"
                    ))
                    continue

                documents = self.store.find_all(name)
                if writer is not None:
                    writer.write_collection(name, documents)
            except Exception as e:
                logger.error(f"{name:<20} - Error: {e}", extra=extra)
                report.add(CollectionOutcome(name, OutcomeStatus.FAILED, error=str(e)))
                continue

            logger.info(f"{name:<20} - {len(documents)} documents", extra=extra)
            report.add(CollectionOutcome(name, OutcomeStatus.EXPORTED, documents=len(documents)))

        if writer is not None:
            report.manifest = writer.write_manifest(mongodb_uri=mongodb_uri)

        report.completed_at = datetime.now(timezone.utc)
        logger.info(f"Total documents backed up: {report.total_documents}")
        return report

    def import_snapshot(self, snapshot_dir: Path, dry_run: bool = False) -> ExchangeReport:
        """
        Restore a snapshot directory into the live store.

        For every registered collection that has a file in the snapshot,
        the live collection is emptied and refilled with the file's
        documents, ids included. Collections without a file are left
        untouched.

        Args:
            snapshot_dir: Snapshot directory to restore from
            dry_run: Parse and count without touching the store

        Returns:
            ExchangeReport with results

        Raises:
            SnapshotNotFoundError: If the directory does not exist
            RestoreCancelled: If the confirmation gate declines
        """
        reader = SnapshotReader(snapshot_dir)
        report = ExchangeReport(
            operation=Operation.RESTORE,
            dry_run=dry_run,
            started_at=datetime.now(timezone.utc),
            snapshot_dir=reader.snapshot_dir,
        )

        logger.info(f"Restore from: {reader.snapshot_dir}")
        report.manifest = reader.get_manifest()
        if report.manifest is not None:
            for line in report.manifest.summary_lines():
                logger.info(f"Backup information - {line}")

        if not dry_run:
            present = reader.available_collections(self.collections)
            self._require_confirmation(DestructivePlan(
                operation=Operation.RESTORE.value,
                store_name=self.store.get_name(),
                collections=[c.name for c in present],
                snapshot_dir=reader.snapshot_dir,
                manifest=report.manifest,
            ))

        for descriptor in self.collections:
            name = descriptor.name
            extra = collection_extra(name, Operation.RESTORE.value)

            if not reader.has_collection(name):
                logger.warning(f"{name:<20} - File not found, skipping", extra=extra)
                report.add(CollectionOutcome(name, OutcomeStatus.SKIPPED, note="file not found"))
                continue

            try:
                documents = reader.read_collection(name)
                if not dry_run:
                    self.store.delete_all(name)
                    if documents:
                        self.store.insert_many(name, documents)
            except Exception as e:
                logger.error(f"{name:<20} - Error: {e}", extra=extra)
                report.add(CollectionOutcome(name, OutcomeStatus.FAILED, error=str(e)))
                continue

            verb = "would be restored" if dry_run else "restored"
            logger.info(f"{name:<20} - {len(documents)} documents {verb}", extra=extra)
            report.add(CollectionOutcome(name, OutcomeStatus.RESTORED, documents=len(documents)))

        report.completed_at = datetime.now(timezone.utc)
        logger.info(f"Total documents restored: {report.total_documents}")
        return report

    def purge(self, dry_run: bool = False) -> ExchangeReport:
        """
        Delete every document of each purgeable collection.

        Collections flagged ``preserve_on_purge`` (user accounts) are
        reported as skipped and never touched.

        Raises:
            RestoreCancelled: If the confirmation gate declines
        """
        report = ExchangeReport(
            operation=Operation.PURGE,
            dry_run=dry_run,
            started_at=datetime.now(timezone.utc),
        )
        targets = purgeable_collections(self.collections)

        if not dry_run:
            self._require_confirmation(DestructivePlan(
                operation=Operation.PURGE.value,
                store_name=self.store.get_name(),
                collections=[c.name for c in targets],
            ))

        for descriptor in self.collections:
            name = descriptor.name
            extra = collection_extra(name, Operation.PURGE.value)

            if descriptor not in targets:
                logger.info(f"{name:<20} - Preserved", extra=extra)
                report.add(CollectionOutcome(name, OutcomeStatus.SKIPPED, note="preserved"))
                continue

            try:
                if not self.store.has_collection(name):
                    logger.info(f"{name:<20} - Collection does not exist, skipping", extra=extra)
                    report.add(CollectionOutcome(
                        name, OutcomeStatus.SKIPPED, note="collection not found"
                    ))
                    continue

                if dry_run:
                    deleted = len(self.store.find_all(name))
                else:
                    deleted = self.store.delete_all(name)
            except Exception as e:
                logger.error(f"{name:<20} - Error: {e}", extra=extra)
                report.add(CollectionOutcome(name, OutcomeStatus.FAILED, error=str(e)))
                continue

            logger.info(f"{name:<20} - {deleted} documents deleted", extra=extra)
            report.add(CollectionOutcome(name, OutcomeStatus.PURGED, documents=deleted))

        report.completed_at = datetime.now(timezone.utc)
        logger.info(f"Total documents deleted: {report.total_documents}")
        return report
