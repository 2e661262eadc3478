"""Metadata and replication control connection using mysql-connector-python."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import mysql.connector
from mysql.connector import Error as MySQLError

from replica_backup.core.exceptions import ConnectionError, DatabaseError, ReplicationError
from replica_backup.database.config import BackupConfig


logger = logging.getLogger(__name__)

# Storage engines without snapshot isolation.
LOCKING_ENGINES = ("MyISAM",)


class ReplicaConnection:
    """Single metadata connection to the replica being backed up.

    Driver errors are re-raised as ``ConnectionError``, ``DatabaseError``
    or, for the replication thread commands, ``ReplicationError`` with the
    server errno kept in ``details``.
    """

    def __init__(self, config: BackupConfig):
        self.config = config
        self._connection = None

    def _create_connection_config(self) -> Dict[str, Any]:
        """Create connection configuration dictionary."""
        conn_config = {
            'host': self.config.host,
            'port': self.config.port,
            'user': self.config.user,
            'password': self.config.password,
            'connection_timeout': self.config.connection_timeout,
            'autocommit': True,
            'use_unicode': True,
        }
        if not self.config.ssl_enabled:
            conn_config['ssl_disabled'] = True
        return conn_config

    def connect(self) -> "ReplicaConnection":
        """Open the connection.

        Raises:
            ConnectionError: If the server cannot be reached or rejects the login
        """
        try:
            self._connection = mysql.connector.connect(**self._create_connection_config())
        except MySQLError as e:
            raise ConnectionError(
                f"Failed to connect to {self.config.host}:{self.config.port}: {e}",
                details={"host": self.config.host}
            ) from e
        logger.info(f"Connected to server {self.config.host}:{self.config.port}")
        return self

    def close(self) -> None:
        """Close the connection if it is open."""
        if self._connection is None:
            return
        try:
            self._connection.close()
        except MySQLError as e:
            logger.warning(f"Error closing connection to {self.config.host}: {e}")
        finally:
            self._connection = None

    def __enter__(self) -> "ReplicaConnection":
        if self._connection is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def _query(self, sql: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        if self._connection is None:
            raise ConnectionError("Connection not established")
        cursor = self._connection.cursor(dictionary=True)
        try:
            cursor.execute(sql, params)
            return cursor.fetchall() if cursor.with_rows else []
        finally:
            cursor.close()

    def list_databases(self) -> List[str]:
        """Return every database reported by the server.

        Raises:
            ConnectionError: If the listing query fails
        """
        try:
            rows = self._query("SHOW DATABASES")
        except MySQLError as e:
            raise ConnectionError(f"Failed to list databases: {e}") from e
        return [row["Database"] for row in rows]

    def count_locking_tables(self, database: str) -> int:
        """Count tables of ``database`` using a table-locking engine."""
        placeholders = ", ".join(["%s"] * len(LOCKING_ENGINES))
        try:
            rows = self._query(
                "SELECT COUNT(*) AS cnt FROM information_schema.TABLES "
                f"WHERE TABLE_SCHEMA = %s AND ENGINE IN ({placeholders})",
                (database, *LOCKING_ENGINES)
            )
        except MySQLError as e:
            raise DatabaseError(f"Failed to probe storage engines for {database}: {e}") from e
        return int(rows[0]["cnt"]) if rows else 0

    def schemas_with_locking_tables(self, databases: Iterable[str]) -> Set[str]:
        """Return the subset of ``databases`` holding table-locking tables, in one query."""
        databases = list(databases)
        if not databases:
            return set()
        engine_marks = ", ".join(["%s"] * len(LOCKING_ENGINES))
        schema_marks = ", ".join(["%s"] * len(databases))
        try:
            rows = self._query(
                "SELECT TABLE_SCHEMA AS schema_name, COUNT(*) AS cnt "
                "FROM information_schema.TABLES "
                f"WHERE ENGINE IN ({engine_marks}) AND TABLE_SCHEMA IN ({schema_marks}) "
                "GROUP BY TABLE_SCHEMA",
                (*LOCKING_ENGINES, *databases)
            )
        except MySQLError as e:
            raise DatabaseError(f"Failed to probe storage engines: {e}") from e
        return {row["schema_name"] for row in rows if int(row["cnt"]) > 0}

    def _replication_command(self, sql: str) -> None:
        try:
            self._query(sql)
        except MySQLError as e:
            raise ReplicationError(
                f"{sql} failed: {e}",
                details={"errno": e.errno, "sqlstate": e.sqlstate}
            ) from e

    def stop_replica_sql_thread(self) -> None:
        self._replication_command("STOP SLAVE SQL_THREAD")

    def start_replica_sql_thread(self) -> None:
        self._replication_command("START SLAVE SQL_THREAD")

    def seconds_behind_master(self) -> Optional[int]:
        """Return replication lag, or None if the server reports none."""
        rows = self._query("SHOW SLAVE STATUS")
        if not rows:
            return None
        lag = rows[0].get("Seconds_Behind_Master")
        return int(lag) if lag is not None else None
