"""Replica metadata connection and run configuration."""

from .config import BackupConfig, parse_database_list
from .connection import LOCKING_ENGINES, ReplicaConnection

__all__ = [
    'BackupConfig',
    'parse_database_list',
    'LOCKING_ENGINES',
    'ReplicaConnection',
]
