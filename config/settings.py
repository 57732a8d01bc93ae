"""
Pydantic Settings for MongoDB Operations

This module provides strongly-typed configuration settings using Pydantic,
with support for environment variables and YAML configuration files.
"""

from typing import Optional, List, Union
from pathlib import Path
import logging
import os

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_yaml import to_yaml_str

from mongo_ops_exceptions import ConfigurationError


DEFAULT_DATABASE_NAME = "holidaysri"


class ConnectionSettings(BaseSettings):
    """
    Connection settings for establishing and maintaining the MongoDB connection.

    These settings control how the client connects to the server, including:
    - Server location and default database (both carried by the URI)
    - Server selection timeout
    - Retry behavior for resilience against transient failures
    """
    uri: str = Field(f"mongodb://localhost:27017/{DEFAULT_DATABASE_NAME}",
                     validation_alias="MONGODB_URI",
                     description="MongoDB connection string, may embed the default database")
    database: Optional[str] = Field(None,
                                    description="Database name override; defaults to the URI's database")
    server_selection_timeout_ms: int = Field(5000,
                                             description="How long the driver waits for a usable server")
    retry_count: int = Field(3, ge=0,
                             description="Number of times to retry the initial ping")
    retry_interval: float = Field(1.0, ge=0.0,
                                  description="Base delay in seconds between ping retries")
    app_name: str = Field("mongo_backup_ops",
                          description="Application name reported to the server")

    model_config = SettingsConfigDict(env_prefix="MONGO_", case_sensitive=False, populate_by_name=True)


class BackupSettings(BaseSettings):
    """
    Backup settings for MongoDB data protection and recovery.

    These settings configure how database snapshots are written and retained:
    - Specifies storage location for archive files
    - Controls compression level
    - Manages the count-based retention window
    - Configures the restore safety pause and archive verification sample
    """
    backup_path: str = Field("./backups",
                             description="Directory path where archive files will be stored")
    retention_count: int = Field(30, ge=1,
                                 description="Number of most recent archives to keep")
    compression_level: int = Field(6, ge=1, le=9,
                                   description="gzip compression level (1=fastest, 9=best)")
    restore_delay_seconds: float = Field(5.0, ge=0.0,
                                         description="Pause before a restore starts deleting data")
    verification_collections: List[str] = Field(
        default_factory=lambda: ["users", "advertisements", "hsctransactions"],
        description="Collections inspected first when verifying identifier typing"
    )
    verification_sample_limit: int = Field(5, ge=1,
                                           description="Maximum number of collections the verifier inspects")
    use_transactions: bool = Field(False,
                                   description="Run each collection's delete+insert in a transaction (replica sets only)")
    show_progress: bool = Field(False,
                                description="Display a progress bar over collections")
    schedule_cron: str = Field("0 2 * * *",
                               description="Cron expression for the scheduled backup job")
    schedule_timezone: str = Field("Asia/Colombo",
                                   description="Timezone the cron expression is evaluated in")

    model_config = SettingsConfigDict(env_prefix="BACKUP_", case_sensitive=False)


class MonitoringSettings(BaseSettings):
    """
    Logging settings for backup tooling entry points.
    """
    log_level: str = Field("INFO",
                           description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                            description="Format string passed to logging.basicConfig")

    model_config = SettingsConfigDict(env_prefix="MONGO_", case_sensitive=False)


class MongoSettings(BaseSettings):
    """
    Main settings class that consolidates all configuration categories.

    Usage:
        # Load from environment variables and defaults
        settings = MongoSettings()

        # Load from YAML file
        settings = MongoSettings.from_yaml('config.yaml')

        # Access nested settings
        uri = settings.connection.uri
        keep = settings.backup.retention_count
    """
    connection: ConnectionSettings = Field(default_factory=ConnectionSettings,
                                           description="Connection settings for the MongoDB server")
    backup: BackupSettings = Field(default_factory=BackupSettings,
                                   description="Backup and recovery configuration")
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings,
                                           description="Logging configuration")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False, env_nested_delimiter="__")

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path]) -> "MongoSettings":
        """
        Load settings from YAML file

        Raises:
            ConfigurationError: If the file is not valid YAML or holds invalid values
        """
        import yaml
        try:
            with open(yaml_file, 'r') as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationError(f"Invalid settings file {yaml_file}: {e}") from e

    def to_yaml(self) -> str:
        """Render the settings as a YAML document."""
        return to_yaml_str(self)


def load_settings(config_path: Optional[str] = None) -> MongoSettings:
    """
    Load settings from file and/or environment variables.

    Args:
        config_path: Path to YAML configuration file. If None or file doesn't exist,
                    falls back to environment variables and default values.

    Returns:
        MongoSettings object with loaded configuration

    Example:
        # Load from specific config file
        settings = load_settings("/path/to/config.yaml")

        # Load from environment variables and defaults
        settings = load_settings()
    """
    if config_path and os.path.exists(config_path):
        return MongoSettings.from_yaml(config_path)
    return MongoSettings()


def configure_logging(settings: Optional[MongoSettings] = None) -> None:
    """Apply the monitoring settings to the root logger (entry points only)."""
    settings = settings or load_settings()
    level = getattr(logging, settings.monitoring.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.monitoring.log_format)
