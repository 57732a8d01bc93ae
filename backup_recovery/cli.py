#!/usr/bin/env python3
"""
Command line entry point for backup operations.

    mongo-backup export
    mongo-backup restore [BACKUP] [--yes | --prompt]
    mongo-backup list
    mongo-backup verify [BACKUP]
    mongo-backup prune [--dry-run]

``restore`` without a file name lists the available archives.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from config import MongoSettings, configure_logging, load_settings
from connection_management import ConnectionManager
from mongo_ops_exceptions import MongoOpsError
from .config import BackupRecoveryConfig, build_config
from .core import BackupManager
from .exceptions import RestoreCancelledError
from .models.entities import ArchiveFile, ArchiveMetadata

WIDTH = 40


def print_section(title: str) -> None:
    print("=" * WIDTH)
    print(title)
    print("=" * WIDTH)


def prompt_confirmation(metadata: ArchiveMetadata) -> bool:
    """Ask the operator to type 'yes' before a restore deletes anything."""
    print("WARNING: This will DELETE all existing data and restore from backup!")
    answer = input(f"Restore '{metadata.database}' from {metadata.timestamp}? Type 'yes' to continue: ")
    return answer.strip().lower() == "yes"


def print_backups(backups: List[ArchiveFile]) -> None:
    for index, backup in enumerate(backups, 1):
        print(f"{index}. {backup.name}")
        print(f"   Date: {backup.modified_at:%Y-%m-%d %H:%M:%S}")
        print(f"   Size: {backup.size_mb:.2f} MB\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mongo-backup",
        description="Back up, restore and verify a MongoDB database"
    )
    parser.add_argument("--config", help="Path to a YAML settings file")
    parser.add_argument("--backup-dir", help="Directory holding the archives")
    parser.add_argument("--retention-count", type=int, help="Number of archives to keep")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("export", help="Export the database to a new archive")

    restore = subparsers.add_parser("restore", help="Restore the database from an archive")
    restore.add_argument("backup", nargs="?", help="Archive file name or path")
    gate = restore.add_mutually_exclusive_group()
    gate.add_argument("--yes", action="store_true", help="Skip the cancellation pause")
    gate.add_argument("--prompt", action="store_true", help="Ask for confirmation instead of pausing")
    restore.add_argument(
        "--legacy-promotion",
        action="store_true",
        help="Convert untagged identifier strings in legacy (version 1.0) archives"
    )

    subparsers.add_parser("list", help="List archives, newest first")

    verify = subparsers.add_parser("verify", help="Check identifier typing in an archive")
    verify.add_argument("backup", nargs="?", help="Archive file name or path (default: newest)")

    prune = subparsers.add_parser("prune", help="Delete archives beyond the retention count")
    prune.add_argument("--dry-run", action="store_true", help="Only report what would be deleted")

    return parser


def build_backup_config(args: argparse.Namespace, settings: MongoSettings) -> BackupRecoveryConfig:
    overrides = {
        "backup_dir": args.backup_dir,
        "retention_count": args.retention_count
    }
    if getattr(args, "yes", False):
        overrides["restore_delay_seconds"] = 0
    if getattr(args, "legacy_promotion", False):
        overrides["legacy_promotion"] = True
    return build_config(settings, **overrides)


async def run_export(manager: BackupManager, conn_mgr: ConnectionManager) -> int:
    conn_mgr.connect()
    result = await manager.create_backup()

    print_section("BACKUP RESULT")
    if not result.success:
        print(f"❌ Backup failed: {result.error_message}")
        print(f"Duration: {result.duration_ms:.0f}ms")
        return 1

    print(f"✅ File: {result.file_name}")
    print(f"Original size: {result.original_size_mb:.2f} MB")
    print(f"Compressed size: {result.file_size_mb:.2f} MB")
    print(f"Compression: {result.compression_ratio_pct:.1f}% reduction")
    print(f"Collections: {result.collections}")
    print(f"Documents: {result.documents}")
    for name, error in result.failed_collections.items():
        print(f"✗ {name}: {error}")
    for warning in result.warnings:
        print(f"⚠️  {warning}")
    print(f"Duration: {result.duration_ms:.0f}ms")
    return 0


async def run_restore(
    manager: BackupManager,
    conn_mgr: ConnectionManager,
    backup: Optional[str]
) -> int:
    if not backup:
        backups = await manager.list_backups()
        print_section("AVAILABLE BACKUPS")
        if not backups:
            print(f"No backups found in {manager.store.root_path}")
            return 1
        print_backups(backups)
        print("USAGE:")
        print("mongo-backup restore <backup-filename>")
        print(f"\nExample:\nmongo-backup restore {backups[0].name}")
        return 0

    conn_mgr.connect()
    try:
        result = await manager.restore_backup(backup)
    except RestoreCancelledError:
        print("Restore cancelled, no data was changed.")
        return 1

    print_section("RESTORE COMPLETE")
    print(f"✅ Collections Restored: {result.collections_restored}")
    print(f"✅ Documents Restored: {result.documents_restored}")
    if result.collections_skipped:
        print(f"- Skipped (empty): {', '.join(result.collections_skipped)}")
    for name, error in result.failed_collections.items():
        print(f"✗ {name}: {error}")
    print(f"Duration: {result.duration_ms:.0f}ms")
    return 0 if result.success else 1


async def run_list(manager: BackupManager) -> int:
    backups = await manager.list_backups()
    print_section("AVAILABLE BACKUPS")
    if not backups:
        print(f"No backups found in {manager.store.root_path}")
        return 0
    print_backups(backups)
    return 0


async def run_verify(manager: BackupManager, backup: Optional[str]) -> int:
    result = await manager.verify_backup(backup)

    print_section("VERIFICATION RESULTS")
    print(f"Backup File: {result.backup_name}")
    print(f"Collections Checked: {result.collections_checked}")
    print(f"✅ Proper ObjectIds: {result.properly_typed_count}")
    print(f"❌ String IDs: {result.regression_count}")
    print(f"- Missing _id: {result.absent_count}")
    for warning in result.warnings:
        print(f"⚠️  {warning}")

    if result.passed:
        print("\n✅ PASS: All ObjectIds are properly preserved!")
        return 0
    print("\n❌ FAIL: Some IDs are strings! Restore would break references.")
    return 1


async def run_prune(manager: BackupManager, dry_run: bool) -> int:
    report = await manager.apply_retention_policy(dry_run=dry_run)
    verb = "Would delete" if dry_run else "Deleted"

    print_section("RETENTION")
    print(f"Archives found: {report.total_backups}")
    print(f"Kept: {len(report.kept)}")
    for name in report.deleted:
        print(f"{verb}: {name}")
    for name, error in report.failed.items():
        print(f"✗ {name}: {error}")
    print(f"Storage freed: {report.storage_freed_mb:.2f} MB")
    return 0 if not report.failed else 1


async def dispatch(args: argparse.Namespace, settings: MongoSettings) -> int:
    backup_config = build_backup_config(args, settings)
    conn_mgr = ConnectionManager(settings)
    confirm = prompt_confirmation if getattr(args, "prompt", False) else None
    manager = BackupManager(conn_mgr, config=backup_config, confirm=confirm)

    try:
        if args.command == "export":
            return await run_export(manager, conn_mgr)
        if args.command == "restore":
            return await run_restore(manager, conn_mgr, args.backup)
        if args.command == "list":
            return await run_list(manager)
        if args.command == "verify":
            return await run_verify(manager, args.backup)
        return await run_prune(manager, args.dry_run)
    finally:
        conn_mgr.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        configure_logging(settings)
        return asyncio.run(dispatch(args, settings))
    except (MongoOpsError, ValueError) as e:
        print(f"❌ {args.command} failed: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
