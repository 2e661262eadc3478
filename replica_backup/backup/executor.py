"""
Backup executor running the external dump and compression tools.

Each task is dumped with ``mariadb-dump`` and the dump is compressed
with ``7z``. The outcome, never an exception, reports what happened.
"""

import asyncio
import logging
import os
import shlex
import time
from pathlib import Path
from typing import Dict, List, Protocol

from replica_backup.backup.aggregator import summarize_error
from replica_backup.backup.models import BackupOutcome, BackupTask


logger = logging.getLogger(__name__)

COMPRESSION_FAILED = "7zip compression failed"


class BackupExecutor(Protocol):
    """Anything able to back up one database and report the outcome."""

    async def execute(self, task: BackupTask) -> BackupOutcome:
        ...


def _remove(*paths: Path) -> None:
    for path in paths:
        path.unlink(missing_ok=True)


class DumpExecutor:
    """Dumps one database and compresses it."""

    def __init__(self, dump_command: str = "mariadb-dump", compress_command: str = "7z"):
        self.dump_command = dump_command
        self.compress_command = compress_command

    def build_dump_command(self, task: BackupTask) -> List[str]:
        return [
            self.dump_command,
            *shlex.split(task.flags),
            f"-h{task.host}",
            f"-u{task.user}",
            task.database,
        ]

    def build_dump_env(self, task: BackupTask) -> Dict[str, str]:
        """Environment for the dump tool; the password never appears in argv."""
        return {**os.environ, "MYSQL_PWD": task.password}

    def build_compress_command(self, task: BackupTask) -> List[str]:
        return [
            self.compress_command,
            "a",
            "-sdel",
            str(task.archive_path),
            str(task.dump_path),
            "-mx1",
        ]

    async def _dump(self, task: BackupTask) -> int:
        with open(task.dump_path, "wb") as out, open(task.error_path, "wb") as err:
            process = await asyncio.create_subprocess_exec(
                *self.build_dump_command(task),
                stdout=out,
                stderr=err,
                env=self.build_dump_env(task)
            )
            return await process.wait()

    async def _compress(self, task: BackupTask) -> int:
        process = await asyncio.create_subprocess_exec(
            *self.build_compress_command(task),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL
        )
        return await process.wait()

    def _read_error(self, task: BackupTask) -> str:
        try:
            return summarize_error(task.error_path.read_text(errors="replace"))
        except OSError:
            return summarize_error(None)

    async def execute(self, task: BackupTask) -> BackupOutcome:
        """Dump and compress ``task.database``.

        Returns:
            Outcome with size and elapsed time, or the first line of the
            dump tool's error output on failure
        """
        start_time = time.monotonic()
        logger.debug(f"{task.database} - dumping...")

        try:
            returncode = await self._dump(task)
        except OSError as e:
            _remove(task.dump_path, task.error_path)
            logger.error(f"{task.database} - dump failed: {e}")
            return BackupOutcome.failed(task, summarize_error(str(e)))

        if returncode != 0:
            error = self._read_error(task)
            _remove(task.dump_path, task.error_path)
            logger.error(f"{task.database} - dump failed: {error}")
            return BackupOutcome.failed(task, error, time.monotonic() - start_time)

        _remove(task.error_path)

        logger.debug(f"{task.database} - compressing...")
        try:
            returncode = await self._compress(task)
        except OSError as e:
            logger.error(f"{task.database} - compression failed: {e}")
            returncode = -1

        elapsed = round(time.monotonic() - start_time, 1)
        if returncode != 0:
            return BackupOutcome.failed(task, COMPRESSION_FAILED, elapsed)

        size = task.archive_path.stat().st_size if task.archive_path.exists() else None
        return BackupOutcome(
            database=task.database,
            success=True,
            size_bytes=size,
            elapsed_seconds=elapsed,
            strategy=task.strategy,
            phase=task.phase,
            archive_path=str(task.archive_path),
        )
