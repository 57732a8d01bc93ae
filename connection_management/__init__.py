"""
Connection Management Module

This module owns the MongoDB client used by the backup tooling.

Key capabilities:
- Explicit database handle passing (no process-wide connection state)
- Ping on connect with exponential backoff retries (tenacity)
- Fail-fast checks for operations that need a live connection
- Thread pool execution of blocking driver calls for async callers
"""

from .connection_manager import ConnectionManager
from .connection_exceptions import (
    ConnectionError,
    ConnectionNotEstablishedError,
    ServerUnavailableError
)

__all__ = [
    'ConnectionManager',
    'ConnectionError',
    'ConnectionNotEstablishedError',
    'ServerUnavailableError',
]
