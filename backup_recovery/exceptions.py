"""
Backup Recovery Exceptions

Defines a granular exception hierarchy for backup and restore operations,
providing specific exception types for different failure scenarios to enable
targeted error handling and recovery strategies.
"""

from typing import Optional, Dict, Any, List

from mongo_ops_exceptions import BackupError as BaseBackupError


class BackupRecoveryError(BaseBackupError):
    """
    Base exception for all backup and recovery operations.

    Attributes:
        message: Human-readable error message
        database_name: Name of the database involved (if applicable)
        backup_name: File name of the archive involved (if applicable)
        context: Additional context information as key-value pairs

    Example:
        ```python
        try:
            result = await manager.restore_backup("backup_holidaysri_2025-01-01_02-00-00.json.gz")
        except BackupRecoveryError as e:
            logger.error(f"Restore failed for {e.backup_name}: {e.message}")
        ```
    """

    def __init__(
        self,
        message: str,
        database_name: Optional[str] = None,
        backup_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.database_name = database_name
        self.backup_name = backup_name
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.database_name:
            parts.append(f"Database: {self.database_name}")
        if self.backup_name:
            parts.append(f"Backup: {self.backup_name}")
        if self.context:
            parts.append(f"Context: {self.context}")
        return " | ".join(parts)


class BackupNotFoundError(BackupRecoveryError):
    """
    Archive does not exist.

    Raised before any destructive step when a restore or verification names
    an archive that cannot be found.

    Additional Attributes:
        storage_path: Path where the archive was expected
    """

    def __init__(
        self,
        message: str,
        backup_name: Optional[str] = None,
        storage_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, backup_name, context)
        self.storage_path = storage_path


class BackupCorruptedError(BackupRecoveryError):
    """
    Archive cannot be decompressed or parsed.

    Raised when reading an archive fails. A restore that hits this error has
    not deleted anything yet.
    """

    def __init__(
        self,
        message: str,
        backup_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, backup_name, context)


class ArchiveFormatError(BackupCorruptedError):
    """
    Archive parsed but does not have the ``metadata``/``data`` layout.

    Additional Attributes:
        problems: List of structural problems found
    """

    def __init__(
        self,
        message: str,
        backup_name: Optional[str] = None,
        problems: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, backup_name, context)
        self.problems = problems or []


class BackupStorageError(BackupRecoveryError):
    """
    File system failure.

    Raised when the backup directory cannot be created, an archive cannot be
    written or read, or the disk is full.

    Additional Attributes:
        storage_path: Path that caused the error
        error_code: System error code (if available)
    """

    def __init__(
        self,
        message: str,
        storage_path: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, None, context)
        self.storage_path = storage_path
        self.error_code = error_code


class CollectionBackupError(BackupRecoveryError):
    """
    Reading one collection failed during export.

    Never propagated out of an export: the exporter records an empty list for
    the collection, logs the error and keeps going.
    """

    def __init__(
        self,
        message: str,
        collection_name: str,
        database_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, database_name, None, context)
        self.collection_name = collection_name


class CollectionRestoreError(BackupRecoveryError):
    """
    Replacing one collection failed during restore.

    Never propagated out of a restore: the failure is counted in the
    ``RestoreResult`` and the loader moves on to the next collection.

    Additional Attributes:
        collection_name: Collection being replaced
        deleted: Whether the delete step had already run
    """

    def __init__(
        self,
        message: str,
        collection_name: str,
        backup_name: Optional[str] = None,
        deleted: bool = False,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, backup_name, context)
        self.collection_name = collection_name
        self.deleted = deleted


class RetentionError(BackupRecoveryError):
    """
    One old archive could not be deleted during a retention sweep.

    Additional Attributes:
        storage_path: Path of the archive that survived the sweep
    """

    def __init__(
        self,
        message: str,
        storage_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, None, context)
        self.storage_path = storage_path


class RestoreCancelledError(BackupRecoveryError):
    """
    Operator declined the restore at the confirmation gate.

    Raised before any collection is touched.
    """
    pass
