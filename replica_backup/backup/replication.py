"""
Replica SQL thread control.

Pauses the replica's apply thread while lock-requiring databases are
dumped, and guarantees it is started again afterwards.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from mysql.connector import Error as MySQLError

from replica_backup.backup.models import ReplicationState
from replica_backup.core.exceptions import ReplicaBackupError
from replica_backup.database.connection import ReplicaConnection


logger = logging.getLogger(__name__)

PRIVILEGE_MARKERS = ("REPLICATION SLAVE ADMIN", "SUPER privilege")
# ER_DBACCESS_DENIED_ERROR, ER_ACCESS_DENIED_ERROR, ER_TABLEACCESS_DENIED_ERROR,
# ER_SPECIFIC_ACCESS_DENIED_ERROR
PRIVILEGE_ERRNOS = (1044, 1045, 1142, 1227)


def is_privilege_error(error: Exception) -> bool:
    """Check whether an error means the user lacks replication privileges."""
    errno = getattr(error, "errno", None)
    if errno is None and isinstance(error, ReplicaBackupError):
        errno = error.details.get("errno")
    if errno in PRIVILEGE_ERRNOS:
        return True
    message = str(error)
    return any(marker in message for marker in PRIVILEGE_MARKERS)


class ReplicationController:
    """Two-state machine around the replica SQL thread.

    Only one caller drives a controller during a run.
    """

    def __init__(self, connection: ReplicaConnection):
        self.connection = connection
        self.state = ReplicationState.RUNNING
        self.resume_failed = False
        self.last_lag: Optional[int] = None

    def pause(self) -> bool:
        """Stop the replica SQL thread.

        Returns:
            True if the thread was stopped; False if the user lacks the
            privilege or the command failed
        """
        logger.info("Stopping replica SQL thread...")
        try:
            self.connection.stop_replica_sql_thread()
        except (MySQLError, ReplicaBackupError) as e:
            if is_privilege_error(e):
                logger.warning(
                    "Cannot pause replication - backup user needs "
                    "REPLICATION SLAVE ADMIN privilege; continuing without pause"
                )
            else:
                logger.error(f"Failed to stop replica SQL thread: {e}")
            return False

        self.state = ReplicationState.STOPPED
        logger.info("Replica SQL thread stopped")
        return True

    def resume(self) -> bool:
        """Start the replica SQL thread again.

        Returns:
            True if the thread was started
        """
        logger.info("Starting replica SQL thread...")
        try:
            self.connection.start_replica_sql_thread()
        except (MySQLError, ReplicaBackupError) as e:
            self.resume_failed = True
            logger.error(f"Failed to restart replication: {e}")
            return False

        self.state = ReplicationState.RUNNING
        logger.info("Replica SQL thread started - will catch up automatically")
        return True

    def replication_lag(self) -> Optional[int]:
        """Read and log Seconds_Behind_Master; None if not reported."""
        try:
            lag = self.connection.seconds_behind_master()
        except (MySQLError, ReplicaBackupError) as e:
            logger.warning(f"Could not determine replication lag: {e}")
            lag = None
        else:
            if lag is None:
                logger.warning("Could not determine replication lag")
            else:
                logger.info(f"Replication lag: {lag} seconds")
        self.last_lag = lag
        return lag

    @contextmanager
    def paused(self) -> Iterator[bool]:
        """Pause replication for the duration of the block.

        Yields whether the pause succeeded. Resume runs exactly once on
        every exit path when it did, followed by a lag check.
        """
        was_paused = self.pause()
        try:
            yield was_paused
        finally:
            if was_paused:
                self.resume()
            self.replication_lag()
