"""
Custom exceptions for Replica Backup.

This module defines custom exception classes used throughout
the application for better error handling and reporting.
"""

from typing import Any, Dict, Optional


class ReplicaBackupError(Exception):
    """Base exception class for Replica Backup errors."""
    
    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(ReplicaBackupError):
    """Raised when required configuration is missing or malformed."""
    pass


class ConnectionError(ReplicaBackupError):
    """Raised when the metadata connection to the replica fails."""
    pass


class DatabaseError(ReplicaBackupError):
    """Raised when a metadata query fails."""
    pass


class ReplicationError(DatabaseError):
    """Raised when the replica SQL thread cannot be controlled."""
    pass


class BackupError(ReplicaBackupError):
    """Raised when backup operations fail."""
    pass


class StorageError(BackupError):
    """Raised when backup storage locations cannot be prepared."""
    pass
