"""
Phase scheduling for database backups.

Each phase dumps its databases with bounded concurrency and returns
only once every task has finished.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from replica_backup.backup.aggregator import FailureAggregator, summarize_error
from replica_backup.backup.executor import BackupExecutor
from replica_backup.backup.models import BackupOutcome, BackupTask, DumpStrategy
from replica_backup.database.config import BackupConfig


logger = logging.getLogger(__name__)

TRANSACTION_FLAGS = "--single-transaction --skip-lock-tables"
SSL_DISABLED_FLAG = "--ssl=0"
NETWORK_FLAGS = "--quick --max-allowed-packet=1G --net-buffer-length=32768"


def build_dump_flags(strategy: DumpStrategy, ssl_enabled: bool = False) -> str:
    """Combine transaction, SSL and network flags for the dump tool."""
    parts = [
        TRANSACTION_FLAGS if strategy is DumpStrategy.SINGLE_TRANSACTION else "",
        "" if ssl_enabled else SSL_DISABLED_FLAG,
        NETWORK_FLAGS,
    ]
    return " ".join(part for part in parts if part)


class PhaseScheduler:
    """Runs a group of backup tasks concurrently, one phase at a time."""

    def __init__(
        self,
        executor: BackupExecutor,
        aggregator: FailureAggregator,
        max_workers: Optional[int] = None,
        on_outcome: Optional[Callable[[BackupOutcome], None]] = None
    ):
        self.executor = executor
        self.aggregator = aggregator
        self.max_workers = max_workers or os.cpu_count() or 1
        self.on_outcome = on_outcome

    def build_tasks(
        self,
        databases: Sequence[str],
        config: BackupConfig,
        output_prefix: Path,
        strategy: DumpStrategy,
        phase: int
    ) -> List[BackupTask]:
        flags = build_dump_flags(strategy, config.ssl_enabled)
        return [
            BackupTask(
                database=db,
                host=config.host,
                user=config.user,
                password=config.password,
                output_prefix=Path(output_prefix),
                strategy=strategy,
                flags=flags,
                phase=phase,
            )
            for db in databases
        ]

    async def _run_task(self, task: BackupTask, semaphore: asyncio.Semaphore) -> BackupOutcome:
        async with semaphore:
            try:
                outcome = await self.executor.execute(task)
            except Exception as e:
                logger.exception(f"Backup of {task.database} raised an unexpected error")
                outcome = BackupOutcome.failed(task, summarize_error(str(e) or type(e).__name__))

        self.aggregator.record(outcome)
        if self.on_outcome:
            self.on_outcome(outcome)
        return outcome

    async def run_tasks(self, tasks: Sequence[BackupTask]) -> List[BackupOutcome]:
        """Execute ``tasks`` with at most ``max_workers`` in flight.

        Returns:
            Outcomes in task order, after every task has completed
        """
        if not tasks:
            return []
        semaphore = asyncio.Semaphore(self.max_workers)
        return list(await asyncio.gather(*(self._run_task(task, semaphore) for task in tasks)))

    async def run_phase(
        self,
        phase: int,
        databases: Sequence[str],
        config: BackupConfig,
        output_prefix: Path,
        strategy: DumpStrategy
    ) -> List[BackupOutcome]:
        tasks = self.build_tasks(databases, config, output_prefix, strategy, phase)
        logger.info(
            f"Phase {phase}: backing up {len(tasks)} databases "
            f"({strategy.value}, {self.max_workers} workers)"
        )
        outcomes = await self.run_tasks(tasks)
        failed = sum(1 for o in outcomes if not o.success)
        logger.info(f"Phase {phase} finished: {len(outcomes) - failed} succeeded, {failed} failed")
        return outcomes
