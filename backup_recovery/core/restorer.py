"""
Restore Loader

Replaces the contents of live collections with the documents of one archive.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from tqdm import tqdm

from ..config import BackupRecoveryConfig
from ..exceptions import ArchiveFormatError, CollectionRestoreError, RestoreCancelledError
from ..models.entities import ArchiveMetadata, RestoreResult
from ..utils.codec import decode_archive, parse_archive_text
from ..utils.compression import CompressionHandler
from .local_backend import LocalArchiveStore

logger = logging.getLogger(__name__)


@dataclass
class LoadedArchive:
    """An archive read, decompressed and decoded, ready to restore."""
    name: str
    path: Path
    metadata: ArchiveMetadata
    data: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)


class RestoreLoader:
    """
    Restore a database from an archive.

    The archive is fully read and decoded before anything is deleted, so a
    missing or corrupt file never touches live data. After the metadata is
    logged the operator gets a chance to cancel: a ``confirm`` callback when
    one is given, otherwise a ``restore_delay_seconds`` pause during which
    Ctrl+C aborts. Async callers run their own gate on the event loop between
    ``load_archive`` and ``apply``, since a worker thread never sees Ctrl+C.

    Each collection is then handled on its own:

    - an empty document list is skipped, so a stale archive cannot wipe a
      live collection that still has data
    - otherwise all live documents are deleted and the archived ones inserted
    - a failure is counted and the loader moves on

    Without ``use_transactions`` the delete and the insert run back to back;
    a crash between them leaves that collection empty until the restore is
    run again. With ``use_transactions`` (replica sets only) both run in one
    transaction.

    Example:
        ```python
        loader = RestoreLoader(config)
        result = loader.restore(database, "backup_holidaysri_2025-01-15_02-00-00.json.gz")

        print(f"Collections Restored: {result.collections_restored}")
        print(f"Documents Restored: {result.documents_restored}")
        ```
    """

    def __init__(
        self,
        config: BackupRecoveryConfig,
        store: Optional[LocalArchiveStore] = None,
        confirm: Optional[Callable[[ArchiveMetadata], bool]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the restore loader.

        Args:
            config: Backup recovery configuration
            store: Archive store; built from ``config`` when None
            confirm: Called with the archive metadata before anything is
                deleted; returning False cancels the restore
            sleep: Used for the cancellation pause when no ``confirm`` is given
        """
        self.config = config
        self.store = store or LocalArchiveStore(config)
        self.confirm = confirm
        self._sleep = sleep
        self.compression_handler = CompressionHandler(config.compression_level)

    def load_archive(self, name_or_path: Union[str, Path]) -> LoadedArchive:
        """
        Read, decompress and decode an archive without touching the database.

        Raises:
            BackupNotFoundError: If the archive does not exist
            BackupCorruptedError: If it cannot be decompressed or decoded
            ArchiveFormatError: If its metadata or layout is invalid
        """
        path = self.store.resolve_archive(name_or_path)
        logger.info(f"Reading backup file: {path.name}")

        payload = self.store.read_archive(path)
        text = self.compression_handler.decompress_text(payload, backup_name=path.name)
        raw = parse_archive_text(text, backup_name=path.name)

        try:
            metadata = ArchiveMetadata.model_validate(raw["metadata"])
        except ValidationError as e:
            raise ArchiveFormatError(
                f"Archive metadata is invalid: {e}",
                backup_name=path.name,
                problems=[error["msg"] for error in e.errors()]
            ) from e

        promote = self.config.legacy_promotion and metadata.is_legacy_format
        if self.config.legacy_promotion and not promote:
            logger.debug(f"{path.name} is version {metadata.version}, legacy promotion not applied")

        archive = decode_archive(raw, backup_name=path.name, promote_legacy=promote)
        return LoadedArchive(
            name=path.name,
            path=path,
            metadata=metadata,
            data=archive["data"]
        )

    def restore(self, database: Database, name_or_path: Union[str, Path]) -> RestoreResult:
        """
        Replace the contents of every non-empty archived collection.

        Args:
            database: Live database handle
            name_or_path: Archive file name in the backup directory, or a path

        Returns:
            RestoreResult with per-collection counters

        Raises:
            BackupNotFoundError: If the archive does not exist
            BackupCorruptedError: If the archive cannot be read
            RestoreCancelledError: If the operator cancelled the restore
        """
        start_time = datetime.now()
        loaded = self.load_archive(name_or_path)

        self.log_metadata(loaded)
        self._await_operator(loaded)

        return self.apply(database, loaded, start_time)

    def apply(
        self,
        database: Database,
        loaded: LoadedArchive,
        start_time: Optional[datetime] = None
    ) -> RestoreResult:
        """
        Replace live collections with the documents of an already loaded archive.

        This is the destructive step; callers run their cancellation gate
        before it.

        Args:
            database: Live database handle
            loaded: Archive returned by ``load_archive``
            start_time: Start of the whole restore, for the reported duration

        Returns:
            RestoreResult with per-collection counters
        """
        start_time = start_time or datetime.now()
        logger.info(f"Starting restore into database '{database.name}'...")
        result = RestoreResult(
            backup_name=loaded.name,
            database=loaded.metadata.database
        )

        items = loaded.data.items()
        if self.config.show_progress:
            items = tqdm(list(items), desc="Restoring collections", unit="collection")

        for collection_name, documents in items:
            if not documents:
                logger.info(f"- Skipped {collection_name} (empty)")
                result.collections_skipped.append(collection_name)
                continue

            try:
                self._replace_collection(database, collection_name, documents, loaded.name)
            except CollectionRestoreError as e:
                if e.deleted:
                    logger.error(
                        f"✗ Error restoring {collection_name} after its documents were deleted, "
                        f"the collection needs to be restored again: {e.message}"
                    )
                else:
                    logger.error(f"✗ Error restoring {collection_name}: {e.message}")
                result.collections_failed += 1
                result.failed_collections[collection_name] = e.message
                continue

            result.collections_restored += 1
            result.documents_restored += len(documents)
            logger.info(f"✓ Restored {len(documents)} documents to {collection_name}")

        result.duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Restore complete: {result.collections_restored} collections, "
            f"{result.documents_restored} documents, {result.collections_failed} failed "
            f"in {result.duration_ms:.0f}ms"
        )
        return result

    def log_metadata(self, loaded: LoadedArchive) -> None:
        metadata = loaded.metadata
        logger.info(f"Backup: {loaded.name}")
        logger.info(f"Database: {metadata.database}")
        logger.info(f"Backup Date: {metadata.timestamp}")
        logger.info(f"Collections: {metadata.collections}")
        logger.info(f"Backup Type: {metadata.backup_type} (format {metadata.version})")

    def _await_operator(self, loaded: LoadedArchive) -> None:
        """Give the operator a chance to cancel before any deletion."""
        if self.confirm is not None:
            if not self.confirm(loaded.metadata):
                raise RestoreCancelledError("Restore cancelled by operator", backup_name=loaded.name)
            return

        delay = self.config.restore_delay_seconds
        if delay <= 0:
            return

        logger.warning(
            f"This will DELETE existing data and restore from backup. "
            f"Press Ctrl+C to cancel, continuing in {delay:g} seconds..."
        )
        try:
            self._sleep(delay)
        except KeyboardInterrupt as e:
            raise RestoreCancelledError("Restore cancelled by operator", backup_name=loaded.name) from e

    def _replace_collection(
        self,
        database: Database,
        collection_name: str,
        documents: List[Dict[str, Any]],
        backup_name: str
    ) -> None:
        """
        Delete then insert one collection.

        Raises:
            CollectionRestoreError: If either step fails
        """
        collection = database[collection_name]
        deleted = False
        try:
            if self.config.use_transactions:
                with database.client.start_session() as session:
                    session.with_transaction(
                        lambda s: self._delete_and_insert(collection, documents, s)
                    )
            else:
                collection.delete_many({})
                deleted = True
                collection.insert_many(documents)
        except PyMongoError as e:
            raise CollectionRestoreError(
                str(e),
                collection_name=collection_name,
                backup_name=backup_name,
                deleted=deleted
            ) from e

    @staticmethod
    def _delete_and_insert(collection: Collection, documents: List[Dict[str, Any]], session) -> None:
        collection.delete_many({}, session=session)
        collection.insert_many(documents, session=session)
