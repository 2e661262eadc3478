"""
Pytest configuration and fixtures for Replica Backup tests.

This module provides a sample configuration, a mocked replica connection
and a scriptable backup executor shared across the test modules.
"""

import asyncio
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest

from replica_backup.backup.models import BackupOutcome, BackupTask
from replica_backup.database.config import BackupConfig
from replica_backup.database.connection import ReplicaConnection


class FakeExecutor:
    """Executor that records tasks and reports scripted outcomes."""

    def __init__(self, errors: Optional[Dict[str, str]] = None, raises: Optional[Dict[str, Exception]] = None):
        self.errors = errors or {}
        self.raises = raises or {}
        self.tasks: List[BackupTask] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.events: Optional[List[str]] = None

    async def execute(self, task: BackupTask) -> BackupOutcome:
        self.tasks.append(task)
        if self.events is not None:
            self.events.append(f"backup:{task.database}")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if task.database in self.raises:
                raise self.raises[task.database]
            if task.database in self.errors:
                return BackupOutcome.failed(task, self.errors[task.database])
            return BackupOutcome(
                database=task.database,
                success=True,
                size_bytes=1024,
                elapsed_seconds=0.1,
                strategy=task.strategy,
                phase=task.phase,
            )
        finally:
            self.in_flight -= 1

    def task_for(self, database: str) -> BackupTask:
        return next(task for task in self.tasks if task.database == database)


@pytest.fixture
def sample_env() -> Dict[str, str]:
    """Environment as the cron job would provide it."""
    return {
        "SQL_SERVER_TO_BACKUP_NAME": "sql-replica-1",
        "SQL_SERVER_TO_BACKUP_FQDN": "sql-replica-1.example.com",
        "SQL_BACKUP_USER": "backup",
        "SQL_BACKUP_PASS": "secret",
        "TMP_BACKUP_TO_DIR": "/tmp/sql-dumps",
        "FINAL_COPY_TO_DIR": "/mnt/backups",
    }


@pytest.fixture
def backup_config(tmp_path) -> BackupConfig:
    """Sample run configuration."""
    return BackupConfig(
        host="sql-replica-1.example.com",
        user="backup",
        password="secret",
        server_name="sql-replica-1",
        tmp_backup_dir=str(tmp_path / "tmp"),
        final_copy_dir=str(tmp_path / "final"),
        max_workers=2,
    )


@pytest.fixture
def make_connection():
    """Build a mocked replica connection.

    ``databases`` is what SHOW DATABASES returns, ``myisam`` the schemas
    holding MyISAM tables.
    """
    def _make(databases=None, myisam=None, lag=0):
        databases = list(databases or [])
        myisam = set(myisam or [])
        connection = Mock(spec=ReplicaConnection)
        connection.list_databases.return_value = databases
        connection.schemas_with_locking_tables.side_effect = (
            lambda dbs: {db for db in dbs if db in myisam}
        )
        connection.count_locking_tables.side_effect = lambda db: 2 if db in myisam else 0
        connection.seconds_behind_master.return_value = lag
        return connection

    return _make


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def make_executor():
    """Build a FakeExecutor with scripted errors or exceptions."""
    return FakeExecutor
