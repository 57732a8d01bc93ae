"""
Backup Recovery Configuration

Centralized configuration for backup and recovery operations, providing
a single source of truth for the tunable parameters related to archive
storage, retention, restore safety and verification.

The dataclass can be built directly, from a plain dictionary, or from the
``backup`` section of the project-wide ``MongoSettings``.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional
from pathlib import Path
import logging

from config import MongoSettings

logger = logging.getLogger(__name__)


@dataclass
class BackupRecoveryConfig:
    """
    Configuration for backup and recovery operations.

    Storage Settings:
        backup_dir: Directory holding the archive files
        compression_level: gzip level 1-9 (default: 6)

    Retention Settings:
        retention_count: Keep N most recent archives (default: 30)

    Restore Settings:
        restore_delay_seconds: Pause between announcing a restore and deleting
            anything, giving an operator time to abort (default: 5)
        use_transactions: Wrap each collection's delete+insert in a
            transaction; requires a replica set (default: False)
        legacy_promotion: Convert bare 24-hex identifier strings to ObjectId
            when reading archives written before identifiers were tagged

    Verification Settings:
        verification_collections: Collections inspected first
        verification_sample_limit: Maximum collections inspected (default: 5)

    Monitoring Settings:
        show_progress: Display a tqdm progress bar over collections

    Example:
        ```python
        config = BackupRecoveryConfig(
            backup_dir="/mnt/backups",
            retention_count=14,
            restore_delay_seconds=10
        )

        backup_manager = BackupManager(connection_mgr=conn_mgr, config=config)
        ```
    """

    # Storage Settings
    backup_dir: str = "./backups"
    compression_level: int = 6

    # Retention Settings
    retention_count: int = 30

    # Restore Settings
    restore_delay_seconds: float = 5.0
    use_transactions: bool = False
    legacy_promotion: bool = False

    # Verification Settings
    verification_collections: List[str] = field(
        default_factory=lambda: ["users", "advertisements", "hsctransactions"]
    )
    verification_sample_limit: int = 5

    # Monitoring Settings
    show_progress: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            ValueError: If any configuration parameter is invalid
        """
        if not self.backup_dir:
            raise ValueError("backup_dir must be set")

        if not 1 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 1 and 9")

        if self.retention_count < 1:
            raise ValueError("retention_count must be at least 1, the newest archive is always kept")

        if self.restore_delay_seconds < 0:
            raise ValueError("restore_delay_seconds cannot be negative")

        if self.verification_sample_limit <= 0:
            raise ValueError("verification_sample_limit must be positive")

    @classmethod
    def from_settings(cls, settings: MongoSettings) -> 'BackupRecoveryConfig':
        """
        Build configuration from the ``backup`` section of ``MongoSettings``.

        Args:
            settings: Loaded project settings

        Returns:
            BackupRecoveryConfig instance
        """
        backup = settings.backup
        return cls(
            backup_dir=backup.backup_path,
            compression_level=backup.compression_level,
            retention_count=backup.retention_count,
            restore_delay_seconds=backup.restore_delay_seconds,
            use_transactions=backup.use_transactions,
            verification_collections=list(backup.verification_collections),
            verification_sample_limit=backup.verification_sample_limit,
            show_progress=backup.show_progress
        )

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'BackupRecoveryConfig':
        """
        Create configuration from a dictionary.

        Example:
            ```python
            config = BackupRecoveryConfig.from_dict({
                'backup_dir': '/mnt/backups',
                'retention_count': 20
            })
            ```
        """
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def get_backup_root_path(self) -> Path:
        """
        Get the backup directory as a Path object.

        Returns:
            Path object for the backup directory
        """
        return Path(self.backup_dir)

    def ensure_backup_directory_exists(self) -> Path:
        """
        Ensure the backup directory exists.

        Returns:
            Path of the directory

        Raises:
            OSError: If directory cannot be created
        """
        backup_path = self.get_backup_root_path()
        backup_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured backup directory exists: {backup_path}")
        return backup_path

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (
            f"BackupRecoveryConfig("
            f"backup_path={self.backup_dir}, "
            f"retention={self.retention_count} backups, "
            f"restore_delay={self.restore_delay_seconds}s"
            f")"
        )


def build_config(settings: Optional[MongoSettings] = None, **overrides) -> BackupRecoveryConfig:
    """
    Build a configuration from settings with keyword overrides applied on top.

    Args:
        settings: Project settings; environment defaults are used when None
        **overrides: Field values that replace the settings-derived ones

    Returns:
        BackupRecoveryConfig instance
    """
    base = BackupRecoveryConfig.from_settings(settings or MongoSettings()).to_dict()
    base.update({key: value for key, value in overrides.items() if value is not None})
    return BackupRecoveryConfig.from_dict(base)
