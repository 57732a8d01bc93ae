"""
Configuration Module

This module provides centralized configuration management for MongoDB operations:
- Connection configuration
- Backup storage, retention and scheduling settings
- Logging configuration
- Configuration validation and loading

Implements a flexible, environment-aware configuration system
with sensible defaults and comprehensive validation using Pydantic.
"""

from .settings import (
    MongoSettings,
    ConnectionSettings,
    BackupSettings,
    MonitoringSettings,
    load_settings,
    configure_logging,
    DEFAULT_DATABASE_NAME
)

__all__ = [
    'MongoSettings',
    'ConnectionSettings',
    'BackupSettings',
    'MonitoringSettings',
    'load_settings',
    'configure_logging',
    'DEFAULT_DATABASE_NAME'
]
