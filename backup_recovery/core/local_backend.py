"""
Local File System Archive Store

Implements archive storage on the local file system. Every export produces a
single gzip-compressed JSON file in the backup directory, named

    backup_<database>_<YYYY-MM-DD>_<HH-MM-SS>.json.gz

Archives are written to a hidden temporary file first and renamed into place,
so a reader never sees a half-written archive under an archive name.
"""

import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..config import BackupRecoveryConfig
from ..exceptions import BackupNotFoundError, BackupStorageError
from ..models.entities import ArchiveFile

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "backup_"
ARCHIVE_SUFFIX = ".json.gz"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
TEMP_PREFIX = ".backup_"
TEMP_SUFFIX = ".tmp"

ARCHIVE_NAME_PATTERN = re.compile(
    r"^backup_(?P<database>.+)_(?P<date>\d{4}-\d{2}-\d{2})_(?P<time>\d{2}-\d{2}-\d{2})"
    r"(?:_(?P<sequence>\d+))?\.json\.gz$"
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_archive_name(name: str, database_name: Optional[str] = None) -> bool:
    """
    Check a file name against the archive naming convention.

    Args:
        name: File name without directory
        database_name: Only accept archives of this database when given
    """
    match = ARCHIVE_NAME_PATTERN.match(name)
    if match is None:
        return False
    return database_name is None or match.group("database") == database_name


class LocalArchiveStore:
    """
    Local file system storage for database archives.

    Directory structure:
        backup_dir/
        ├── backup_holidaysri_2025-01-14_02-00-00.json.gz
        ├── backup_holidaysri_2025-01-15_02-00-00.json.gz
        └── backup_holidaysri_2025-01-15_02-00-00_1.json.gz   # same-second export

    Example:
        ```python
        store = LocalArchiveStore(config)

        path = store.write_archive("holidaysri", compressed_bytes)

        for archive in store.list_archives():
            print(f"{archive.name} ({archive.size_mb:.2f} MB)")

        data = store.read_archive(path.name)
        ```
    """

    def __init__(
        self,
        config: BackupRecoveryConfig,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the archive store.

        Args:
            config: Backup recovery configuration
            clock: Callable returning the current time; UTC wall clock by default
        """
        self.config = config
        self.root_path = Path(config.backup_dir)
        self._clock = clock or utc_now
        logger.debug(f"LocalArchiveStore initialized with root: {self.root_path}")

    def build_archive_name(
        self,
        database_name: str,
        created_at: datetime,
        sequence: int = 0
    ) -> str:
        """
        Build an archive file name.

        Args:
            database_name: Name of the exported database
            created_at: Creation time, formatted to the second
            sequence: Disambiguates archives created within the same second
        """
        stamp = created_at.strftime(TIMESTAMP_FORMAT)
        suffix = f"_{sequence}" if sequence else ""
        return f"{ARCHIVE_PREFIX}{database_name}_{stamp}{suffix}{ARCHIVE_SUFFIX}"

    def next_archive_path(self, database_name: str, created_at: Optional[datetime] = None) -> Path:
        """Return a path for a new archive that does not collide with an existing file."""
        created_at = created_at or self._clock()
        sequence = 0
        while True:
            candidate = self.root_path / self.build_archive_name(database_name, created_at, sequence)
            if not candidate.exists():
                return candidate
            sequence += 1

    def ensure_root(self) -> Path:
        """
        Create the backup directory if it is missing.

        Raises:
            BackupStorageError: If the directory cannot be created
        """
        try:
            return self.config.ensure_backup_directory_exists()
        except OSError as e:
            raise BackupStorageError(
                f"Cannot create backup directory: {e}",
                storage_path=str(self.root_path),
                error_code=str(e.errno) if e.errno else None
            ) from e

    def write_archive(
        self,
        database_name: str,
        payload: bytes,
        created_at: Optional[datetime] = None
    ) -> Path:
        """
        Write a compressed archive under a fresh name.

        The bytes go to a temporary file in the backup directory, are flushed
        to disk and then renamed to the final name. On failure the temporary
        file is removed and nothing is left under an archive name.

        Args:
            database_name: Name of the exported database
            payload: Compressed archive bytes
            created_at: Creation time used in the name

        Returns:
            Path of the written archive

        Raises:
            BackupStorageError: If the directory or file cannot be written
        """
        self.ensure_root()
        final_path = self.next_archive_path(database_name, created_at)

        temp_name = None
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=TEMP_PREFIX,
                suffix=TEMP_SUFFIX,
                dir=str(self.root_path)
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, final_path)
        except OSError as e:
            if temp_name and os.path.exists(temp_name):
                try:
                    os.unlink(temp_name)
                except OSError as cleanup_err:
                    logger.warning(f"Failed to remove temporary archive {temp_name}: {cleanup_err}")
            raise BackupStorageError(
                f"Failed to write archive: {e}",
                storage_path=str(final_path),
                error_code=str(e.errno) if e.errno else None
            ) from e

        logger.debug(f"Wrote archive {final_path} ({len(payload)} bytes)")
        return final_path

    def list_archives(self, database_name: Optional[str] = None) -> List[ArchiveFile]:
        """
        List archives in the backup directory, newest first.

        Files that do not follow the naming convention are ignored.

        Args:
            database_name: Only list archives of this database when given

        Returns:
            List of ArchiveFile, newest first
        """
        if not self.root_path.is_dir():
            logger.debug(f"Backup directory {self.root_path} does not exist")
            return []

        archives = []
        for entry in self.root_path.iterdir():
            if not entry.is_file() or not is_archive_name(entry.name, database_name):
                continue
            try:
                stat = entry.stat()
            except FileNotFoundError:
                # removed between listing and stat
                continue
            archives.append(ArchiveFile(
                name=entry.name,
                path=str(entry),
                modified_at=datetime.fromtimestamp(stat.st_mtime),
                size_bytes=stat.st_size
            ))

        archives.sort(key=lambda a: (a.modified_at, a.name), reverse=True)
        logger.debug(f"Found {len(archives)} archives")
        return archives

    def latest_archive(self, database_name: Optional[str] = None) -> Optional[ArchiveFile]:
        """Return the newest archive, or None when there is none."""
        archives = self.list_archives(database_name)
        return archives[0] if archives else None

    def resolve_archive(self, name_or_path: Union[str, Path]) -> Path:
        """
        Resolve a bare archive name or a path to an existing file.

        A bare name is looked up in the backup directory; anything containing
        a directory component is used as given.

        Raises:
            BackupNotFoundError: If no such file exists
        """
        candidate = Path(name_or_path)
        if candidate.parent == Path("."):
            candidate = self.root_path / candidate

        if not candidate.is_file():
            raise BackupNotFoundError(
                f"Backup file not found: {name_or_path}",
                backup_name=candidate.name,
                storage_path=str(candidate)
            )
        return candidate

    def read_archive(self, name_or_path: Union[str, Path]) -> bytes:
        """
        Read the compressed bytes of an archive.

        Raises:
            BackupNotFoundError: If the archive does not exist
            BackupStorageError: If the file cannot be read
        """
        path = self.resolve_archive(name_or_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise BackupStorageError(
                f"Failed to read archive: {e}",
                storage_path=str(path),
                error_code=str(e.errno) if e.errno else None
            ) from e

    def delete_archive(self, archive: ArchiveFile) -> None:
        """
        Delete one archive file.

        Raises:
            OSError: If the file cannot be removed
        """
        Path(archive.path).unlink()
        logger.debug(f"Deleted archive file {archive.path}")
