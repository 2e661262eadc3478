"""
Backup orchestration for Replica Backup.

This module provides database selection, storage engine
classification, phased concurrent dumping with replication
pause coordination, and failure reporting.
"""

from replica_backup.backup.aggregator import FailureAggregator, summarize_error
from replica_backup.backup.classifier import EngineClassifier
from replica_backup.backup.executor import BackupExecutor, DumpExecutor
from replica_backup.backup.lister import EXCLUDED_DATABASES, filter_databases, select_databases
from replica_backup.backup.models import (
    BackupOutcome,
    BackupRun,
    BackupTask,
    Classification,
    DatabaseSelection,
    DumpStrategy,
    EngineTag,
    ReplicationState,
)
from replica_backup.backup.orchestrator import BackupOrchestrator, run_backup
from replica_backup.backup.replication import ReplicationController
from replica_backup.backup.reporter import BackupReporter
from replica_backup.backup.scheduler import PhaseScheduler, build_dump_flags
from replica_backup.backup.storage import BackupStorage

__all__ = [
    "FailureAggregator",
    "summarize_error",
    "EngineClassifier",
    "BackupExecutor",
    "DumpExecutor",
    "EXCLUDED_DATABASES",
    "filter_databases",
    "select_databases",
    "BackupOutcome",
    "BackupRun",
    "BackupTask",
    "Classification",
    "DatabaseSelection",
    "DumpStrategy",
    "EngineTag",
    "ReplicationState",
    "BackupOrchestrator",
    "run_backup",
    "ReplicationController",
    "BackupReporter",
    "PhaseScheduler",
    "build_dump_flags",
    "BackupStorage",
]
