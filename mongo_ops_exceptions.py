"""
MongoDB Operations Exceptions

This module defines custom exceptions for the Mongo_Ops package
to provide clear error handling and reporting.
"""

class MongoOpsError(Exception):
    """Base exception for all Mongo_Ops errors"""
    pass


class ConnectionError(MongoOpsError):
    """Raised when connection to the MongoDB server fails"""
    pass


class ConfigurationError(MongoOpsError):
    """Raised when configuration is invalid or missing"""
    pass


class BackupError(MongoOpsError):
    """Raised when a backup or recovery operation fails"""
    pass
