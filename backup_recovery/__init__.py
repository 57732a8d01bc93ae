"""
Backup and Recovery Module

Provides snapshot backup and restore of a whole MongoDB database through the
driver alone, with no external dump tools.

Features:
- One gzip-compressed JSON archive per export, written atomically
- ObjectId values tagged as ``{"$oid": ...}`` so they survive the round trip
- Restore that never wipes a live collection from an empty archived one
- Per-collection failure isolation on export and restore
- Count-based retention of the newest archives
- Verification that catches identifiers stored as plain strings

Typical usage from external projects:

    from Mongo_Ops.backup_recovery import BackupManager, BackupRecoveryConfig
    from Mongo_Ops.connection_management import ConnectionManager

    config = BackupRecoveryConfig(backup_dir="/mnt/backups", retention_count=30)

    with ConnectionManager() as conn_mgr:
        backup_manager = BackupManager(conn_mgr, config=config)
        result = await backup_manager.create_backup()
"""

# Configuration
from .config import BackupRecoveryConfig, build_config

# Core
from .core import (
    BackupManager,
    LocalArchiveStore,
    SnapshotExporter,
    RestoreLoader,
    ArchiveVerifier
)

# Models
from .models.entities import (
    IdentifierStatus,
    VerificationVerdict,
    ArchiveMetadata,
    BackupResult,
    RestoreResult,
    ArchiveFile,
    IdentifierCheck,
    VerificationResult,
    RetentionReport
)

# Exceptions
from .exceptions import (
    BackupRecoveryError,
    BackupNotFoundError,
    BackupCorruptedError,
    ArchiveFormatError,
    BackupStorageError,
    CollectionBackupError,
    CollectionRestoreError,
    RetentionError,
    RestoreCancelledError
)

# Utilities
from .utils import (
    CompressionHandler,
    RetentionPolicyManager,
    encode_value,
    decode_value,
    is_identifier_field,
    promote_legacy_identifiers
)

__all__ = [
    # Core
    'BackupManager',
    'LocalArchiveStore',
    'SnapshotExporter',
    'RestoreLoader',
    'ArchiveVerifier',

    # Configuration
    'BackupRecoveryConfig',
    'build_config',

    # Enums
    'IdentifierStatus',
    'VerificationVerdict',

    # Entities
    'ArchiveMetadata',
    'BackupResult',
    'RestoreResult',
    'ArchiveFile',
    'IdentifierCheck',
    'VerificationResult',
    'RetentionReport',

    # Exceptions
    'BackupRecoveryError',
    'BackupNotFoundError',
    'BackupCorruptedError',
    'ArchiveFormatError',
    'BackupStorageError',
    'CollectionBackupError',
    'CollectionRestoreError',
    'RetentionError',
    'RestoreCancelledError',

    # Utilities
    'CompressionHandler',
    'RetentionPolicyManager',
    'encode_value',
    'decode_value',
    'is_identifier_field',
    'promote_legacy_identifiers'
]
