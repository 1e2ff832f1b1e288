#!/usr/bin/env python3
"""
CLI for backup/restore operations on the expenses-tracker database.

Usage:
    expenses-backup export  [--only users,loans] [--no-zip] [--encrypt] [--dry-run]
    expenses-backup restore backup-2025-11-29T19-40-00 [--yes] [--dry-run]
    expenses-backup list
    expenses-backup purge   [--yes] [--dry-run]
    expenses-backup pack    backup-2025-11-29T19-40-00 [--encrypt] [--out archive.zip]
    expenses-backup unpack  --in backups/backup-2025-11-29T19-40-00.zip [--out backups/]

    expenses-restore backup-2025-11-29T19-40-00
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .collections import select_collections
from .config import BackupConfig
from .core.exceptions import (
    BackupError,
    RestoreCancelled,
    SnapshotNotFoundError,
    StoreConnectionError,
    UnknownCollectionError,
)
from .core.logging import configure_logging
from .snapshot.catalog import SnapshotCatalog
from .snapshot.confirmation import countdown_confirmation
from .snapshot.exchanger import ExchangeReport, SnapshotExchanger
from .snapshot.manifest import MANIFEST_FILE_NAME, SnapshotManifest
from .snapshot.pack import SnapshotPacker, SnapshotUnpacker, get_encryption_key
from .store import DocumentStore, MongoStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False, log_format: str = "text") -> None:
    """Configure logging."""
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, structured=(log_format == "json"))


def load_config(args) -> BackupConfig:
    """Build the run configuration once, from --config or the environment."""
    if getattr(args, "config", None):
        return BackupConfig.from_file(Path(args.config))
    return BackupConfig.from_env()


def open_store(config: BackupConfig) -> DocumentStore:
    """Connect to the live store."""
    return MongoStore.from_config(config)


def print_report(report: ExchangeReport, as_json: bool = False) -> None:
    print(report.summary())
    if as_json:
        print("\n" + json.dumps(report.to_dict(), indent=2, default=str))


def print_available_snapshots(catalog: SnapshotCatalog, out=None) -> None:
    """Print the snapshot listing, most recent first."""
    out = out or sys.stdout
    names = catalog.list_snapshots()
    if names:
        print("Available backups:", file=out)
        for name in names:
            print(f"  - {name}", file=out)
    else:
        print(f"No backups found in: {catalog.backups_dir}", file=out)


def print_restore_usage(catalog: SnapshotCatalog, prog: str) -> None:
    print("Error: Please provide backup folder name", file=sys.stderr)
    print(f"\nUsage: {prog} <backup-folder-name>")
    print(f"Example: {prog} backup-2025-11-29T19-40-00\n")
    if catalog.exists():
        print_available_snapshots(catalog)


def _parse_only(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [part for part in value.split(",") if part.strip()]


def _encryption_key(config: BackupConfig) -> Optional[bytes]:
    return get_encryption_key(os.environ, key_env_var=config.encryption_key_env_var)


def cmd_export(args, config: BackupConfig) -> int:
    """Export the live store into a new timestamped snapshot."""
    catalog = SnapshotCatalog(config.backups_dir)

    try:
        collections = select_collections(_parse_only(args.only))
    except UnknownCollectionError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    encryption_key = None
    if args.encrypt:
        encryption_key = _encryption_key(config)
        if not encryption_key:
            logger.error(f"Encryption key not found. Set {config.encryption_key_env_var} env var.")
            return EXIT_FAILURE

    try:
        store = open_store(config)
    except StoreConnectionError as e:
        logger.error(f"Backup failed: {e}")
        return EXIT_FAILURE

    try:
        exchanger = SnapshotExchanger(store, collections)
        report = exchanger.export_snapshot(
            catalog.new_snapshot_dir(),
            mongodb_uri=config.masked_uri(),
            dry_run=args.dry_run,
        )

        if not args.dry_run and not args.no_zip:
            packer = SnapshotPacker(
                report.snapshot_dir,
                encrypt=args.encrypt,
                encryption_key=encryption_key,
            )
            report.archive_path = packer.pack()
    except (BackupError, OSError) as e:
        logger.error(f"Backup failed: {e}")
        return EXIT_FAILURE
    finally:
        store.close()

    print_report(report, as_json=args.json)
    return EXIT_OK


def cmd_restore(args, config: BackupConfig) -> int:
    """Restore a snapshot into the live store."""
    catalog = SnapshotCatalog(config.backups_dir)

    name = args.snapshot
    if args.latest:
        latest = catalog.latest()
        if latest is None:
            logger.error(f"No backups found in: {catalog.backups_dir}")
            return EXIT_FAILURE
        name = latest.name

    if not name:
        print_restore_usage(catalog, args.prog_name)
        return EXIT_FAILURE

    try:
        snapshot_dir = catalog.resolve(name)
        collections = select_collections(_parse_only(args.only))
    except (SnapshotNotFoundError, UnknownCollectionError) as e:
        logger.error(str(e))
        return EXIT_FAILURE

    try:
        store = open_store(config)
    except StoreConnectionError as e:
        logger.error(f"Restore failed: {e}")
        return EXIT_FAILURE

    confirm = None
    if not (args.yes or args.dry_run):
        confirm = countdown_confirmation(config.safety_delay_seconds)

    try:
        exchanger = SnapshotExchanger(store, collections, confirm=confirm)
        report = exchanger.import_snapshot(snapshot_dir, dry_run=args.dry_run)
    except RestoreCancelled as e:
        if e.interrupted:
            print("\nRestore cancelled, nothing was changed.", file=sys.stderr)
            return EXIT_INTERRUPTED
        logger.error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print(
            "\nRestore interrupted partway. Collections processed so far may have "
            "been truncated or replaced; check the log before retrying.",
            file=sys.stderr,
        )
        return EXIT_INTERRUPTED
    finally:
        store.close()

    print_report(report, as_json=args.json)
    return EXIT_OK


def cmd_list(args, config: BackupConfig) -> int:
    """List snapshots under the backups root."""
    catalog = SnapshotCatalog(config.backups_dir)
    names = catalog.list_snapshots()

    if not names:
        print(f"No backups found in: {catalog.backups_dir}")
        return EXIT_OK

    rows = []
    for name in names:
        manifest_path = catalog.backups_dir / name / MANIFEST_FILE_NAME
        row = {"name": name, "date": None, "totalDocuments": None, "collections": None}
        if manifest_path.exists():
            try:
                manifest = SnapshotManifest.load(manifest_path)
            except (OSError, ValueError) as e:
                logger.warning(f"Unreadable manifest in {name}: {e}")
            else:
                row["date"] = manifest.date.isoformat() if manifest.date else None
                row["totalDocuments"] = manifest.total_documents
                row["collections"] = manifest.collection_count
        rows.append(row)

    if args.json:
        print(json.dumps(rows, indent=2))
        return EXIT_OK

    print(f"Backups in {catalog.backups_dir}:")
    for row in rows:
        details = ""
        if row["totalDocuments"] is not None:
            details = f"  {row['totalDocuments']} documents in {row['collections']} collections"
        print(f"  - {row['name']}{details}")
    return EXIT_OK


def cmd_purge(args, config: BackupConfig) -> int:
    """Delete all data except user accounts."""
    try:
        store = open_store(config)
    except StoreConnectionError as e:
        logger.error(f"Purge failed: {e}")
        return EXIT_FAILURE

    confirm = None
    if not (args.yes or args.dry_run):
        confirm = countdown_confirmation(config.safety_delay_seconds)

    try:
        report = SnapshotExchanger(store, confirm=confirm).purge(dry_run=args.dry_run)
    except RestoreCancelled as e:
        if e.interrupted:
            print("\nPurge cancelled, nothing was changed.", file=sys.stderr)
            return EXIT_INTERRUPTED
        logger.error(str(e))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print(
            "\nPurge interrupted partway. Collections processed so far may have "
            "been truncated or replaced; check the log before retrying.",
            file=sys.stderr,
        )
        return EXIT_INTERRUPTED
    finally:
        store.close()

    print_report(report, as_json=args.json)
    return EXIT_OK


def cmd_pack(args, config: BackupConfig) -> int:
    """Pack a snapshot into a (optionally encrypted) zip archive."""
    catalog = SnapshotCatalog(config.backups_dir)

    name = args.snapshot
    if args.latest or not name:
        latest = catalog.latest()
        if latest is None:
            logger.error(f"No backups found in: {catalog.backups_dir}")
            return EXIT_FAILURE
        name = latest.name

    encryption_key = None
    if args.encrypt:
        encryption_key = _encryption_key(config)
        if not encryption_key:
            logger.error(f"Encryption key not found. Set {config.encryption_key_env_var} env var.")
            return EXIT_FAILURE

    try:
        packer = SnapshotPacker(
            catalog.resolve(name),
            encrypt=args.encrypt,
            encryption_key=encryption_key,
        )
        result_path = packer.pack(Path(args.out) if args.out else None)
    except Exception as e:
        logger.error(f"Failed to pack: {e}")
        return EXIT_FAILURE

    logger.info(f"Created archive: {result_path}")
    return EXIT_OK


def cmd_unpack(args, config: BackupConfig) -> int:
    """Unpack a snapshot archive into the backups root."""
    archive_path = Path(args.input)
    output_dir = Path(args.out) if args.out else config.backups_dir

    decryption_key = None
    if archive_path.suffix == ".enc":
        decryption_key = _encryption_key(config)
        if not decryption_key:
            logger.error(f"Decryption key not found. Set {config.encryption_key_env_var} env var.")
            return EXIT_FAILURE

    try:
        unpacker = SnapshotUnpacker(archive_path, decryption_key=decryption_key)
        result_dir = unpacker.unpack(output_dir)
    except Exception as e:
        logger.error(f"Failed to unpack: {e}")
        return EXIT_FAILURE

    logger.info(f"Unpacked to: {result_dir}")
    return EXIT_OK


def _add_global_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--config",
        help="YAML config file (default: environment / .env)",
    )


def _add_restore_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("snapshot", nargs="?", help="Backup folder name, e.g. backup-2025-11-29T19-40-00")
    parser.add_argument("--latest", action="store_true", help="Restore the most recent backup")
    parser.add_argument("--only", help="Comma-separated subset of collections")
    parser.add_argument("--yes", action="store_true", help="Skip the safety delay")
    parser.add_argument("--dry-run", action="store_true", help="Report without making changes")
    parser.add_argument("--json", action="store_true", help="Output report as JSON")


def build_parser() -> argparse.ArgumentParser:
    """Build the ``expenses-backup`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="expenses-backup",
        description="Expenses tracker backup/restore CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_global_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    export_parser = subparsers.add_parser("export", help="Back up the database to a new snapshot")
    export_parser.add_argument("--only", help="Comma-separated subset of collections")
    export_parser.add_argument("--no-zip", action="store_true", help="Do not create a zip archive")
    export_parser.add_argument("--encrypt", action="store_true", help="Encrypt the zip archive")
    export_parser.add_argument("--dry-run", action="store_true", help="Report without writing files")
    export_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    restore_parser = subparsers.add_parser("restore", help="Restore a snapshot into the database")
    _add_restore_arguments(restore_parser)

    list_parser = subparsers.add_parser("list", help="List available snapshots")
    list_parser.add_argument("--json", action="store_true", help="Output listing as JSON")

    purge_parser = subparsers.add_parser("purge", help="Delete all data except user accounts")
    purge_parser.add_argument("--yes", action="store_true", help="Skip the safety delay")
    purge_parser.add_argument("--dry-run", action="store_true", help="Report without deleting")
    purge_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    pack_parser = subparsers.add_parser("pack", help="Pack a snapshot into a zip archive")
    pack_parser.add_argument("snapshot", nargs="?", help="Backup folder name (default: latest)")
    pack_parser.add_argument("--latest", action="store_true", help="Pack the most recent backup")
    pack_parser.add_argument("--out", help="Output archive path")
    pack_parser.add_argument("--encrypt", action="store_true", help="Encrypt the archive")

    unpack_parser = subparsers.add_parser("unpack", help="Unpack a snapshot archive")
    unpack_parser.add_argument("--in", dest="input", required=True, help="Input archive path")
    unpack_parser.add_argument("--out", help="Output directory (default: backups root)")

    return parser


COMMANDS = {
    "export": cmd_export,
    "restore": cmd_restore,
    "list": cmd_list,
    "purge": cmd_purge,
    "pack": cmd_pack,
    "unpack": cmd_unpack,
}


def _run(handler, args) -> int:
    setup_logging(verbose=args.verbose, log_format=args.log_format)
    try:
        config = load_config(args)
    except BackupError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE
    return handler(args, config)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``expenses-backup``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        print("No command specified. Use --help for usage.", file=sys.stderr)
        return EXIT_FAILURE

    args.prog_name = "expenses-backup restore"
    return _run(handler, args)


def restore_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``expenses-restore <backup-folder-name>``."""
    parser = argparse.ArgumentParser(
        prog="expenses-restore",
        description="Restore an expenses tracker backup into MongoDB",
    )
    _add_global_arguments(parser)
    _add_restore_arguments(parser)
    args = parser.parse_args(argv)

    args.prog_name = "expenses-restore"
    return _run(cmd_restore, args)


if __name__ == "__main__":
    sys.exit(main())
