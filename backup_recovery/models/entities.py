"""
Backup Recovery Entities

Defines data models for backup and restore operations, including archive
metadata, operation outcomes, archive listings and verification reports.

These models use Pydantic for validation and provide a type-safe interface
for backup operations.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field


BYTES_PER_MB = 1024 * 1024

# Written into every archive this package produces
ARCHIVE_FORMAT_VERSION = "1.1"

# Version tag of archives written before identifiers were tagged
LEGACY_FORMAT_VERSION = "1.0"

BACKUP_METHOD = "python"


class IdentifierStatus(str, Enum):
    """
    Classification of one identifier field found in an archive.

    States:
        TYPED: Encoded as a tagged ``{"$oid": ...}`` value
        PLAIN_STRING: A bare 24-hex string, the untagged regression
        ABSENT: The document has no ``_id`` at all
    """
    TYPED = "TYPED"
    PLAIN_STRING = "PLAIN_STRING"
    ABSENT = "ABSENT"


class VerificationVerdict(str, Enum):
    """Overall outcome of an archive verification."""
    PASS = "PASS"
    FAIL = "FAIL"


class ArchiveMetadata(BaseModel):
    """
    Header stored under the ``metadata`` key of every archive.

    Attributes:
        database: Name of the database that was exported
        timestamp: ISO 8601 creation timestamp
        collections: Number of collections in the archive
        backup_type: Tag naming the method that produced the archive
        version: Archive format version

    Example:
        ```python
        metadata = ArchiveMetadata(
            database="holidaysri",
            timestamp="2025-01-15T02:00:00.123456+00:00",
            collections=27
        )
        ```
    """
    database: str = Field(..., description="Exported database name")
    timestamp: str = Field(..., description="ISO 8601 creation timestamp")
    collections: int = Field(default=0, ge=0, description="Number of collections")
    backup_type: str = Field(default=BACKUP_METHOD, alias="backupType", description="Backup method tag")
    version: str = Field(default=ARCHIVE_FORMAT_VERSION, description="Archive format version")

    model_config = {"populate_by_name": True}

    @property
    def is_legacy_format(self) -> bool:
        """Check if the archive predates tagged identifiers."""
        return self.version == LEGACY_FORMAT_VERSION


class BackupResult(BaseModel):
    """
    Result of an export.

    Export never raises for operation-level failures; a scheduler can log the
    result and move on.

    Attributes:
        success: Whether the archive was written
        file_name: Archive file name
        file_path: Full path to the archive
        file_size_mb: Compressed size in megabytes
        original_size_mb: Uncompressed JSON size in megabytes
        compression_ratio_pct: Size reduction in percent
        collections: Number of collections exported
        documents: Number of documents exported
        failed_collections: Collections whose read failed, mapped to the error
        deleted_backups: Old archives removed by the retention sweep
        warnings: Problems after the archive was written, such as a failed retention sweep
        duration_ms: Elapsed time in milliseconds
        error_message: Error description if the export failed
    """
    success: bool = Field(..., description="Whether operation succeeded")
    file_name: Optional[str] = Field(default=None, description="Archive file name")
    file_path: Optional[str] = Field(default=None, description="Path to archive")
    file_size_mb: Optional[float] = Field(default=None, ge=0.0, description="Compressed size in MB")
    original_size_mb: Optional[float] = Field(default=None, ge=0.0, description="Uncompressed size in MB")
    compression_ratio_pct: Optional[float] = Field(default=None, description="Size reduction in percent")
    collections: Optional[int] = Field(default=None, ge=0, description="Collections exported")
    documents: Optional[int] = Field(default=None, ge=0, description="Documents exported")
    failed_collections: Dict[str, str] = Field(default_factory=dict, description="Collections that failed to export")
    deleted_backups: List[str] = Field(default_factory=list, description="Archives removed by retention")
    warnings: List[str] = Field(default_factory=list, description="Problems that did not fail the export")
    duration_ms: float = Field(default=0.0, ge=0.0, description="Execution time in milliseconds")
    error_message: Optional[str] = Field(default=None, description="Error message if failed")

    @property
    def duration_seconds(self) -> float:
        """Get execution time in seconds."""
        return self.duration_ms / 1000.0


class RestoreResult(BaseModel):
    """
    Result of a restore.

    Collection-level failures do not abort the restore, so the outcome is a
    set of counters rather than a single flag.

    Attributes:
        backup_name: Archive that was restored
        database: Database named in the archive metadata
        collections_restored: Collections replaced successfully
        documents_restored: Documents inserted across restored collections
        collections_skipped: Collections left untouched because the archive had no documents
        collections_failed: Collections whose replacement failed
        failed_collections: Collection name mapped to error description
        duration_ms: Elapsed time in milliseconds

    Example:
        ```python
        result = RestoreResult(
            backup_name="backup_holidaysri_2025-01-15_02-00-00.json.gz",
            database="holidaysri",
            collections_restored=25,
            documents_restored=120034,
            duration_ms=5321.0
        )
        ```
    """
    backup_name: str = Field(..., description="Archive file name")
    database: Optional[str] = Field(default=None, description="Database named in the archive")
    collections_restored: int = Field(default=0, ge=0, description="Collections restored")
    documents_restored: int = Field(default=0, ge=0, description="Documents restored")
    collections_skipped: List[str] = Field(default_factory=list, description="Empty collections skipped")
    collections_failed: int = Field(default=0, ge=0, description="Collections that failed")
    failed_collections: Dict[str, str] = Field(default_factory=dict, description="Failure per collection")
    duration_ms: float = Field(default=0.0, ge=0.0, description="Execution time in milliseconds")

    @property
    def success(self) -> bool:
        """Check if every non-empty collection was restored."""
        return self.collections_failed == 0

    @property
    def duration_seconds(self) -> float:
        """Get execution time in seconds."""
        return self.duration_ms / 1000.0


class ArchiveFile(BaseModel):
    """
    One archive file on disk.

    Attributes:
        name: File name
        path: Full path
        modified_at: Modification time
        size_bytes: File size in bytes
    """
    name: str = Field(..., description="Archive file name")
    path: str = Field(..., description="Full path to archive")
    modified_at: datetime = Field(..., description="Modification timestamp")
    size_bytes: int = Field(default=0, ge=0, description="File size in bytes")

    @property
    def size_mb(self) -> float:
        """Get size in megabytes."""
        return self.size_bytes / BYTES_PER_MB


class IdentifierCheck(BaseModel):
    """
    Classification of one identifier field in an inspected document.

    Attributes:
        collection_name: Collection the document came from
        field_path: Dotted path of the field inside the document
        status: How the value was encoded
    """
    collection_name: str = Field(..., description="Collection name")
    field_path: str = Field(..., description="Dotted field path")
    status: IdentifierStatus = Field(..., description="Encoding classification")


class VerificationResult(BaseModel):
    """
    Result of an identifier-typing verification.

    Attributes:
        backup_name: Archive that was inspected
        collections_checked: Number of collections whose first document was inspected
        properly_typed_count: Identifier fields encoded as tagged values
        regression_count: Identifier fields stored as bare 24-hex strings
        absent_count: Inspected documents with no ``_id``
        checks: Individual field classifications
        verdict: PASS when no regression was found
        warnings: Non-fatal observations
        duration_ms: Elapsed time in milliseconds
    """
    backup_name: str = Field(..., description="Archive file name")
    collections_checked: int = Field(default=0, ge=0, description="Collections inspected")
    properly_typed_count: int = Field(default=0, ge=0, description="Tagged identifier fields")
    regression_count: int = Field(default=0, ge=0, description="Plain-string identifier fields")
    absent_count: int = Field(default=0, ge=0, description="Documents without _id")
    checks: List[IdentifierCheck] = Field(default_factory=list, description="Per-field results")
    verdict: VerificationVerdict = Field(..., description="Overall verdict")
    warnings: List[str] = Field(default_factory=list, description="List of warnings")
    duration_ms: float = Field(default=0.0, ge=0.0, description="Verification time in milliseconds")

    @property
    def passed(self) -> bool:
        """Check if the verdict is PASS."""
        return self.verdict == VerificationVerdict.PASS

    @property
    def has_warnings(self) -> bool:
        """Check if any warnings were encountered."""
        return len(self.warnings) > 0


class RetentionReport(BaseModel):
    """
    Outcome of a retention sweep.

    Attributes:
        total_backups: Archives found before the sweep
        kept: Names of archives inside the retention window
        deleted: Names of archives removed
        failed: Archive name mapped to the deletion error
        storage_freed_bytes: Bytes freed (or that would be freed in a dry run)
        dry_run: Whether deletion was skipped
    """
    total_backups: int = Field(default=0, ge=0, description="Archives found")
    kept: List[str] = Field(default_factory=list, description="Archives kept")
    deleted: List[str] = Field(default_factory=list, description="Archives deleted")
    failed: Dict[str, str] = Field(default_factory=dict, description="Archives that could not be deleted")
    storage_freed_bytes: int = Field(default=0, ge=0, description="Bytes freed")
    dry_run: bool = Field(default=False, description="Whether this was a dry run")

    @property
    def storage_freed_mb(self) -> float:
        """Get freed storage in megabytes."""
        return self.storage_freed_bytes / BYTES_PER_MB

    def summary(self) -> Dict[str, Any]:
        """Compact dictionary for logging."""
        return {
            "total_backups": self.total_backups,
            "kept": len(self.kept),
            "deleted": len(self.deleted),
            "failed": len(self.failed),
            "storage_freed_mb": round(self.storage_freed_mb, 2),
            "dry_run": self.dry_run
        }
