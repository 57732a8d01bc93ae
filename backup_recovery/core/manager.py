"""
Backup Manager

Main orchestration class for backup and recovery operations: exporting a
database to an archive, restoring it, listing and verifying archives, and
pruning old ones.
"""

import asyncio
import functools
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Union

from connection_management import ConnectionManager, ConnectionNotEstablishedError
from ..config import BackupRecoveryConfig
from ..exceptions import RestoreCancelledError
from ..models.entities import (
    ArchiveFile,
    ArchiveMetadata,
    BackupResult,
    RestoreResult,
    RetentionReport,
    VerificationResult
)
from ..utils.retention import RetentionPolicyManager
from .exporter import SnapshotExporter
from .local_backend import LocalArchiveStore
from .restorer import LoadedArchive, RestoreLoader
from .verifier import ArchiveVerifier

logger = logging.getLogger(__name__)

class BackupManager:
    """
    Manages backup and restore operations for a MongoDB database.

    This is the main entry point for callers such as the scheduled job or
    the command line. Blocking work runs in the connection manager's thread
    pool. Exports, restores and retention sweeps against the same database
    are serialized by a per-database lock, so two of them never overlap.

    Example:
        ```python
        with ConnectionManager(settings) as conn_mgr:
            manager = BackupManager(conn_mgr, BackupRecoveryConfig.from_settings(settings))

            # Create backup
            result = await manager.create_backup()

            # List backups
            backups = await manager.list_backups()

            # Verify and restore
            report = await manager.verify_backup(backups[0].name)
            restored = await manager.restore_backup(backups[0].name)
        ```
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        config: Optional[BackupRecoveryConfig] = None,
        confirm: Optional[Callable[[ArchiveMetadata], bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize BackupManager.

        Args:
            connection_manager: Owns the MongoDB connection
            config: Backup configuration (uses defaults if None)
            confirm: Restore confirmation callback, see ``RestoreLoader``
            clock: Callable returning the current time, used for archive names
            sleep: Awaited for the restore cancellation pause
        """
        self._connection_manager = connection_manager
        self._config = config or BackupRecoveryConfig()

        self._store = LocalArchiveStore(self._config, clock=clock)
        self._retention_manager = RetentionPolicyManager(self._config.retention_count)
        self._exporter = SnapshotExporter(
            self._config,
            store=self._store,
            retention=self._retention_manager,
            clock=clock
        )
        self._restorer = RestoreLoader(self._config, store=self._store, confirm=confirm)
        self._confirm = confirm
        self._sleep = sleep
        self._verifier = ArchiveVerifier(self._config, store=self._store)

        # Locks for serializing work per database
        self._locks: Dict[str, asyncio.Lock] = {}
        self._global_lock = asyncio.Lock()

        logger.info("BackupManager initialized")

    @property
    def config(self) -> BackupRecoveryConfig:
        return self._config

    @property
    def store(self) -> LocalArchiveStore:
        return self._store

    async def _acquire_database_lock(self, database_name: str) -> asyncio.Lock:
        """Acquire lock for a specific database."""
        async with self._global_lock:
            if database_name not in self._locks:
                self._locks[database_name] = asyncio.Lock()
            return self._locks[database_name]

    async def create_backup(self) -> BackupResult:
        """
        Export the connected database to a new archive.

        Never raises for operation-level failures, including a missing
        connection.

        Returns:
            BackupResult with operation status
        """
        start_time = datetime.now()
        try:
            database = self._connection_manager.get_database()
        except ConnectionNotEstablishedError as e:
            execution_time_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Backup failed: {e}")
            return BackupResult(success=False, duration_ms=execution_time_ms, error_message=str(e))

        lock = await self._acquire_database_lock(database.name)
        async with lock:
            return await self._connection_manager.execute_operation_async(self._exporter.export)

    async def restore_backup(self, name_or_path: Union[str, Path]) -> RestoreResult:
        """
        Restore the connected database from an archive.

        The archive is loaded in a worker thread, then the cancellation gate
        runs on the event loop, so Ctrl+C or task cancellation during the
        pause stops the restore before anything is deleted. Only the delete
        and insert step is handed to the connection manager's thread pool.

        Args:
            name_or_path: Archive file name in the backup directory, or a path

        Returns:
            RestoreResult with per-collection counters

        Raises:
            ConnectionNotEstablishedError: If there is no live connection
            BackupNotFoundError: If the archive does not exist
            BackupCorruptedError: If the archive cannot be read
            RestoreCancelledError: If the operator cancelled the restore
        """
        start_time = datetime.now()
        database = self._connection_manager.get_database()

        lock = await self._acquire_database_lock(database.name)
        async with lock:
            logger.info(f"Restoring backup {name_or_path}")
            loop = asyncio.get_running_loop()
            loaded = await loop.run_in_executor(
                None,
                functools.partial(self._restorer.load_archive, name_or_path)
            )

            self._restorer.log_metadata(loaded)
            await self._await_operator(loaded)

            return await self._connection_manager.execute_operation_async(
                self._restorer.apply,
                loaded,
                start_time
            )

    async def _await_operator(self, loaded: LoadedArchive) -> None:
        """Confirmation callback or cancellable pause, run on the event loop."""
        if self._confirm is not None:
            if not self._confirm(loaded.metadata):
                raise RestoreCancelledError("Restore cancelled by operator", backup_name=loaded.name)
            return

        delay = self._config.restore_delay_seconds
        if delay <= 0:
            return

        logger.warning(
            f"This will DELETE existing data and restore from backup. "
            f"Press Ctrl+C to cancel, continuing in {delay:g} seconds..."
        )
        try:
            await self._sleep(delay)
        except (asyncio.CancelledError, KeyboardInterrupt) as e:
            raise RestoreCancelledError("Restore cancelled by operator", backup_name=loaded.name) from e

    async def list_backups(self, database_name: Optional[str] = None) -> List[ArchiveFile]:
        """
        List available archives, newest first.

        Args:
            database_name: Optional database filter

        Returns:
            List of ArchiveFile
        """
        backups = self._store.list_archives(database_name)
        logger.info(f"Found {len(backups)} backups")
        return backups

    async def verify_backup(self, name_or_path: Optional[Union[str, Path]] = None) -> VerificationResult:
        """
        Verify identifier typing in an archive, the newest one by default.

        Raises:
            BackupNotFoundError: If the archive does not exist
            BackupCorruptedError: If the archive cannot be read
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(self._verifier.verify, name_or_path)
        )

    async def apply_retention_policy(self, dry_run: bool = False) -> RetentionReport:
        """
        Apply retention policy and clean up old archives.

        Args:
            dry_run: If True, only report what would be deleted

        Returns:
            RetentionReport describing the sweep
        """
        lock_key = self._connection_manager.database_name or str(self._store.root_path)
        lock = await self._acquire_database_lock(lock_key)
        async with lock:
            report = self._retention_manager.sweep(
                self._store.list_archives(),
                self._store.delete_archive,
                dry_run=dry_run
            )

        logger.info(f"Retention policy applied: {report.summary()}")
        return report
