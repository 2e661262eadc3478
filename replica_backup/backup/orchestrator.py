"""
Backup orchestration.

This module provides the BackupOrchestrator that takes a replica from
database discovery through both backup phases to the final report, and
``run_backup`` which wraps it with storage handling for the CLI.
"""

import logging
from datetime import datetime, UTC
from pathlib import Path
from typing import Optional, Union

from rich.console import Console

from replica_backup.backup.aggregator import FailureAggregator
from replica_backup.backup.classifier import EngineClassifier
from replica_backup.backup.executor import BackupExecutor, DumpExecutor
from replica_backup.backup.lister import select_databases
from replica_backup.backup.models import BackupRun, DumpStrategy
from replica_backup.backup.replication import ReplicationController
from replica_backup.backup.reporter import BackupReporter
from replica_backup.backup.scheduler import PhaseScheduler
from replica_backup.backup.storage import BackupStorage
from replica_backup.database.config import BackupConfig
from replica_backup.database.connection import ReplicaConnection


logger = logging.getLogger(__name__)


class BackupOrchestrator:
    """Runs one backup of every selected database on a replica."""

    def __init__(
        self,
        config: BackupConfig,
        connection: ReplicaConnection,
        executor: Optional[BackupExecutor] = None,
        reporter: Optional[BackupReporter] = None
    ):
        self.config = config
        self.connection = connection
        self.executor = executor or DumpExecutor(config.dump_command, config.compress_command)
        self.reporter = reporter or BackupReporter(Console(quiet=True))

    async def run(self, output_dir: Union[str, Path]) -> BackupRun:
        """Back up every selected database into ``output_dir``.

        Phase 1 dumps InnoDB-only databases in a single transaction. Phase 2
        dumps databases holding MyISAM tables while replication is paused.

        Args:
            output_dir: Directory receiving the dump archives

        Returns:
            The finished run

        Raises:
            ConnectionError: If the databases cannot be listed
        """
        output_dir = Path(output_dir)
        run = BackupRun(server=self.config.server_name)
        self.reporter.banner(self.config.server_name)
        logger.info(f"Connecting to server {self.config.host}")

        selection = select_databases(self.connection, self.config.databases)
        run.databases = selection.databases
        run.excluded = selection.excluded

        classifier = EngineClassifier(self.connection, batched=self.config.batched_engine_probe)
        classification = classifier.classify(selection.databases)
        run.classification = classification
        self.reporter.classification(classification)

        aggregator = FailureAggregator()
        scheduler = PhaseScheduler(
            self.executor,
            aggregator,
            max_workers=self.config.max_workers,
            on_outcome=self.reporter.task_outcome
        )

        if classification.transactional_only:
            self.reporter.phase_header(1, DumpStrategy.SINGLE_TRANSACTION)
            await scheduler.run_phase(
                1,
                classification.transactional_only,
                self.config,
                output_dir,
                DumpStrategy.SINGLE_TRANSACTION
            )

        if classification.requires_lock:
            self.reporter.phase_header(2, DumpStrategy.PAUSED_REPLICATION)
            controller = ReplicationController(self.connection)
            try:
                with controller.paused() as paused:
                    run.replication_paused = paused
                    await scheduler.run_phase(
                        2,
                        classification.requires_lock,
                        self.config,
                        output_dir,
                        DumpStrategy.PAUSED_REPLICATION
                    )
            finally:
                run.resume_failed = controller.resume_failed
                run.replication_lag_seconds = controller.last_lag

        run.outcomes = aggregator.outcomes
        run.failures = aggregator.failures
        run.success = aggregator.success
        if run.resume_failed and self.config.fail_on_resume_error:
            run.success = False
        run.finished_at = datetime.now(UTC)

        if run.failures:
            logger.error(f"Backup failures: {', '.join(f.database for f in run.failures)}")
        self.reporter.summary(run)
        return run


async def run_backup(
    config: BackupConfig,
    reporter: Optional[BackupReporter] = None,
    executor: Optional[BackupExecutor] = None,
    now: Optional[datetime] = None
) -> BackupRun:
    """Create storage, back up every database, then move dumps to final storage.

    Raises:
        ConnectionError: If the replica cannot be reached or listed
        StorageError: If storage locations cannot be prepared or copied
    """
    storage = BackupStorage.from_config(config, now)
    storage.create_locations()

    try:
        with ReplicaConnection(config) as connection:
            orchestrator = BackupOrchestrator(config, connection, executor=executor, reporter=reporter)
            run = await orchestrator.run(storage.tmp_path)
    except Exception:
        logger.error(f"Backup of {config.server_name} aborted, discarding {storage.tmp_path}")
        storage.cleanup_tmp()
        raise

    storage.copy_to_final()
    storage.cleanup_tmp()
    return run
