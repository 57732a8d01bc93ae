"""
Backup Recovery Models

Exports all data models and entities for backup operations.
"""

from .entities import (
    IdentifierStatus,
    VerificationVerdict,
    ArchiveMetadata,
    BackupResult,
    RestoreResult,
    ArchiveFile,
    IdentifierCheck,
    VerificationResult,
    RetentionReport,
    ARCHIVE_FORMAT_VERSION,
    LEGACY_FORMAT_VERSION,
    BACKUP_METHOD
)

__all__ = [
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

    # Constants
    'ARCHIVE_FORMAT_VERSION',
    'LEGACY_FORMAT_VERSION',
    'BACKUP_METHOD'
]
