"""
Snapshot Exporter

Dumps every collection of a database into one compressed archive file.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson.errors import BSONError
from pymongo.database import Database
from pymongo.errors import PyMongoError
from tqdm import tqdm

from ..config import BackupRecoveryConfig
from ..exceptions import BackupRecoveryError, CollectionBackupError
from ..models.entities import ArchiveMetadata, BackupResult, BYTES_PER_MB
from ..utils.codec import dumps_archive
from ..utils.compression import CompressionHandler
from ..utils.retention import RetentionPolicyManager
from .local_backend import LocalArchiveStore, utc_now

logger = logging.getLogger(__name__)


class SnapshotExporter:
    """
    Export a whole database to a single archive.

    Each collection is read in full and stored under its name. A collection
    whose read fails is stored as an empty list and reported in
    ``BackupResult.failed_collections``; the export carries on. The whole
    archive is built in memory before compression, so very large databases
    are bounded by available memory.

    After the archive is written the retention sweep runs, so the directory
    never holds more than ``retention_count`` archives.

    Example:
        ```python
        exporter = SnapshotExporter(config)
        result = exporter.export(connection_mgr.get_database())

        if result.success:
            print(f"{result.file_name}: {result.documents} documents")
        else:
            print(f"Backup failed: {result.error_message}")
        ```
    """

    def __init__(
        self,
        config: BackupRecoveryConfig,
        store: Optional[LocalArchiveStore] = None,
        retention: Optional[RetentionPolicyManager] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config
        self._clock = clock or utc_now
        self.store = store or LocalArchiveStore(config, clock=self._clock)
        self.retention = retention or RetentionPolicyManager(config.retention_count)
        self.compression_handler = CompressionHandler(config.compression_level)

    def export(self, database: Database) -> BackupResult:
        """
        Export every collection of ``database`` to a new archive.

        Operation-level failures are returned as ``BackupResult(success=False)``
        rather than raised.

        Args:
            database: Live database handle

        Returns:
            BackupResult describing the archive or the failure
        """
        start_time = datetime.now()
        logger.info("Starting database backup...")

        try:
            return self._export(database, start_time)
        except (BackupRecoveryError, PyMongoError, BSONError, OSError, TypeError, ValueError) as e:
            duration_ms = self._elapsed_ms(start_time)
            logger.error(f"Backup failed after {duration_ms:.0f}ms: {e}")
            return BackupResult(
                success=False,
                duration_ms=duration_ms,
                error_message=str(e)
            )

    def _export(self, database: Database, start_time: datetime) -> BackupResult:
        database_name = database.name
        logger.info(f"Database: {database_name}")

        collection_names = database.list_collection_names()
        logger.info(f"Found {len(collection_names)} collections")

        data, failed = self._read_collections(database, collection_names)
        total_documents = sum(len(documents) for documents in data.values())
        logger.info(f"Total documents exported: {total_documents}")

        created_at = self._clock()
        metadata = ArchiveMetadata(
            database=database_name,
            timestamp=created_at.isoformat(),
            collections=len(data)
        )
        archive = {
            "metadata": metadata.model_dump(by_alias=True),
            "data": data
        }

        text = dumps_archive(archive)
        compressed = self.compression_handler.compress_text(text)
        path = self.store.write_archive(database_name, compressed, created_at)

        original_bytes = len(text.encode("utf-8"))
        ratio = self.compression_handler.compression_ratio(original_bytes, len(compressed))

        logger.info(
            f"Backup written: {path.name} "
            f"({original_bytes / BYTES_PER_MB:.2f} MB → {len(compressed) / BYTES_PER_MB:.2f} MB, "
            f"{ratio:.1f}% reduction)"
        )

        deleted, warnings = self._apply_retention()

        duration_ms = self._elapsed_ms(start_time)
        logger.info(
            f"Backup completed: {len(data)} collections, {total_documents} documents "
            f"in {duration_ms:.0f}ms"
        )

        return BackupResult(
            success=True,
            file_name=path.name,
            file_path=str(path),
            file_size_mb=round(len(compressed) / BYTES_PER_MB, 2),
            original_size_mb=round(original_bytes / BYTES_PER_MB, 2),
            compression_ratio_pct=round(ratio, 1),
            collections=len(data),
            documents=total_documents,
            failed_collections=failed,
            deleted_backups=deleted,
            warnings=warnings,
            duration_ms=duration_ms
        )

    def _apply_retention(self) -> Tuple[List[str], List[str]]:
        """
        Sweep old archives after a successful write.

        The new archive is already in place, so a sweep problem is reported
        as a warning and never fails the export.
        """
        try:
            report = self.retention.sweep(
                self.store.list_archives(),
                self.store.delete_archive
            )
        except (OSError, BackupRecoveryError) as e:
            logger.warning(f"Retention sweep skipped: {e}")
            return [], [f"Retention sweep skipped: {e}"]

        warnings = [
            f"Could not delete old backup {name}: {error}"
            for name, error in report.failed.items()
        ]
        return report.deleted, warnings

    def _read_collections(
        self,
        database: Database,
        collection_names: List[str]
    ) -> Tuple[Dict[str, List[Dict[str, Any]]], Dict[str, str]]:
        """Read every collection, recording failures instead of raising."""
        data: Dict[str, List[Dict[str, Any]]] = {}
        failed: Dict[str, str] = {}

        names = collection_names
        if self.config.show_progress:
            names = tqdm(collection_names, desc="Exporting collections", unit="collection")

        for name in names:
            try:
                documents = self._read_collection(database, name)
            except CollectionBackupError as e:
                logger.warning(f"✗ Error exporting {name}: {e.message}")
                data[name] = []
                failed[name] = e.message
                continue

            data[name] = documents
            logger.info(f"✓ Exported {len(documents)} documents from {name}")

        return data, failed

    @staticmethod
    def _read_collection(database: Database, name: str) -> List[Dict[str, Any]]:
        try:
            return list(database[name].find({}))
        except (PyMongoError, BSONError) as e:
            raise CollectionBackupError(
                str(e),
                collection_name=name,
                database_name=database.name
            ) from e

    @staticmethod
    def _elapsed_ms(start_time: datetime) -> float:
        return (datetime.now() - start_time).total_seconds() * 1000
