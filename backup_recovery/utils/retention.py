"""
Retention Policy Management

Provides count-based retention for archive files: the newest N archives are
kept and everything older is deleted.
"""

import logging
from typing import Callable, List, Tuple

from ..exceptions import BackupRecoveryError, RetentionError
from ..models.entities import ArchiveFile, RetentionReport

logger = logging.getLogger(__name__)


class RetentionPolicyManager:
    """
    Manage archive retention.

    Archives are ranked by modification time, newest first, with the file
    name as tie-breaker (names embed the creation second). Everything past
    position ``retention_count`` is deleted. A failure to delete one file is
    recorded and the sweep continues.

    Example:
        ```python
        manager = RetentionPolicyManager(retention_count=30)

        to_keep, to_delete = manager.apply_retention_policy(store.list_archives())
        report = manager.sweep(store.list_archives(), store.delete_archive)

        print(f"Deleted {len(report.deleted)} archives")
        ```
    """

    def __init__(self, retention_count: int = 30):
        """
        Initialize retention policy manager.

        Args:
            retention_count: Number of most recent archives to keep
        """
        if retention_count < 1:
            raise ValueError("retention_count must be at least 1")

        self.retention_count = retention_count
        logger.debug(f"Retention policy initialized: count={retention_count}")

    @staticmethod
    def sort_newest_first(archives: List[ArchiveFile]) -> List[ArchiveFile]:
        """Order archives by modification time, newest first."""
        return sorted(
            archives,
            key=lambda a: (a.modified_at, a.name),
            reverse=True
        )

    def apply_retention_policy(
        self,
        archives: List[ArchiveFile]
    ) -> Tuple[List[ArchiveFile], List[ArchiveFile]]:
        """
        Split archives into those to keep and those to delete.

        Args:
            archives: Archive files matching the naming convention

        Returns:
            Tuple of (archives_to_keep, archives_to_delete)
        """
        if not archives:
            logger.debug("No archives to apply retention policy to")
            return [], []

        ranked = self.sort_newest_first(archives)
        to_keep = ranked[:self.retention_count]
        to_delete = ranked[self.retention_count:]

        logger.debug(
            f"Retention policy applied: {len(to_keep)} to keep, {len(to_delete)} to delete"
        )
        return to_keep, to_delete

    def sweep(
        self,
        archives: List[ArchiveFile],
        delete_archive: Callable[[ArchiveFile], None],
        dry_run: bool = False
    ) -> RetentionReport:
        """
        Delete every archive outside the retention window.

        Args:
            archives: Archive files matching the naming convention
            delete_archive: Callable removing one archive from storage
            dry_run: Report what would be deleted without deleting

        Returns:
            RetentionReport describing the sweep
        """
        to_keep, to_delete = self.apply_retention_policy(archives)
        report = RetentionReport(
            total_backups=len(archives),
            kept=[a.name for a in to_keep],
            dry_run=dry_run
        )

        for archive in to_delete:
            if dry_run:
                logger.info(f"Would delete old backup: {archive.name}")
                report.deleted.append(archive.name)
                report.storage_freed_bytes += archive.size_bytes
                continue

            try:
                self._delete_one(archive, delete_archive)
            except RetentionError as e:
                logger.warning(str(e))
                report.failed[archive.name] = e.message
                continue

            logger.info(f"Deleted old backup: {archive.name}")
            report.deleted.append(archive.name)
            report.storage_freed_bytes += archive.size_bytes

        if report.deleted or report.failed:
            logger.info(f"Retention sweep finished: {report.summary()}")
        return report

    @staticmethod
    def _delete_one(archive: ArchiveFile, delete_archive: Callable[[ArchiveFile], None]) -> None:
        try:
            delete_archive(archive)
        except (OSError, BackupRecoveryError) as e:
            raise RetentionError(
                f"Failed to delete old backup {archive.name}: {e}",
                storage_path=archive.path
            ) from e

    def __repr__(self) -> str:
        return f"RetentionPolicyManager(count={self.retention_count})"
