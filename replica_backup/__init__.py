"""
Replica Backup

Backs up every database on a MariaDB/MySQL replica, choosing a
consistency strategy per database from its storage engines and pausing
replication while MyISAM databases are dumped.
"""

__version__ = "0.1.0"

from replica_backup.backup.models import BackupOutcome, BackupRun
from replica_backup.database.config import BackupConfig

__all__ = [
    "BackupConfig",
    "BackupOutcome",
    "BackupRun",
]
