"""
Connection Management Exceptions

This module defines specialized exceptions for MongoDB connection management,
providing detailed error reporting and handling for connection-related issues.
"""

from mongo_ops_exceptions import ConnectionError as BaseConnectionError


class ConnectionError(BaseConnectionError):
    """
    Base exception for all connection-related errors.

    This base class ensures consistent error handling across the connection
    management system and allows applications to catch all connection errors
    uniformly while still providing access to specific error details.
    """
    pass


class ConnectionNotEstablishedError(ConnectionError):
    """
    Raised when an operation needs the live database but no connection exists.

    Backup and restore operations check for this before touching the backup
    directory or any collection, so nothing is written or deleted.
    """
    pass


class ServerUnavailableError(ConnectionError):
    """
    Raised when the MongoDB server does not answer a ping after all retries.

    This exception helps distinguish between client-side connection issues
    and server-side availability problems.
    """
    pass
