"""
Utilities module for Replica Backup.
"""

from replica_backup.utils.helpers import (
    format_bytes,
    format_duration,
)
from replica_backup.utils.logging import (
    setup_logging,
    get_logger,
)

__all__ = [
    "format_bytes",
    "format_duration",
    "setup_logging",
    "get_logger",
]
