"""
Backup Recovery Core

Exports the archive store, the exporter, restore loader and verifier, and
the BackupManager that orchestrates them.
"""

from .local_backend import LocalArchiveStore, ARCHIVE_NAME_PATTERN, is_archive_name
from .exporter import SnapshotExporter
from .restorer import RestoreLoader, LoadedArchive
from .verifier import ArchiveVerifier, classify_identifier, inspect_document
from .manager import BackupManager

__all__ = [
    'LocalArchiveStore',
    'ARCHIVE_NAME_PATTERN',
    'is_archive_name',
    'SnapshotExporter',
    'RestoreLoader',
    'LoadedArchive',
    'ArchiveVerifier',
    'classify_identifier',
    'inspect_document',
    'BackupManager'
]
