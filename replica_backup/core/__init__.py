"""
Core module for Replica Backup.

This module contains the exception hierarchy shared by
every other part of the application.
"""

from replica_backup.core.exceptions import (
    ReplicaBackupError,
    ConfigurationError,
    ConnectionError,
    DatabaseError,
    ReplicationError,
    BackupError,
    StorageError,
)

__all__ = [
    "ReplicaBackupError",
    "ConfigurationError",
    "ConnectionError",
    "DatabaseError",
    "ReplicationError",
    "BackupError",
    "StorageError",
]
