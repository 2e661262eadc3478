"""
Data models for backup runs.

This module defines the tasks handed to the backup executor, the
outcomes it reports back, and the aggregate record of a whole run.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class EngineTag(str, Enum):
    """Storage engine family a database was classified under."""
    INNODB = "InnoDB"
    MYISAM = "MyISAM"


class DumpStrategy(str, Enum):
    """Consistency strategy used when dumping a database."""
    SINGLE_TRANSACTION = "single_transaction"
    PAUSED_REPLICATION = "paused_replication"

    @property
    def description(self) -> str:
        if self is DumpStrategy.SINGLE_TRANSACTION:
            return "--single-transaction"
        return "Pause replication"


class ReplicationState(str, Enum):
    """State of the replica SQL apply thread."""
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class BackupTask:
    """One database to dump in one phase."""
    database: str
    host: str
    user: str
    password: str = field(repr=False)
    output_prefix: Path
    strategy: DumpStrategy
    flags: str = ""
    phase: int = 1

    @property
    def dump_path(self) -> Path:
        return self.output_prefix / f"{self.database}.sql"

    @property
    def error_path(self) -> Path:
        return self.output_prefix / f"{self.database}.err"

    @property
    def archive_path(self) -> Path:
        return self.output_prefix / f"{self.database}.7z"


class BackupOutcome(BaseModel):
    """Result of a single database backup."""
    database: str
    success: bool
    error: Optional[str] = None
    size_bytes: Optional[int] = None
    elapsed_seconds: Optional[float] = None
    strategy: Optional[DumpStrategy] = None
    phase: Optional[int] = None
    archive_path: Optional[str] = None

    @classmethod
    def failed(cls, task: BackupTask, error: str, elapsed: Optional[float] = None) -> "BackupOutcome":
        return cls(
            database=task.database,
            success=False,
            error=error,
            elapsed_seconds=elapsed,
            strategy=task.strategy,
            phase=task.phase,
        )


class DatabaseSelection(BaseModel):
    """Databases chosen for backup after filtering."""
    databases: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)
    from_allow_list: bool = False


class Classification(BaseModel):
    """Partition of the selected databases by storage engine."""
    transactional_only: List[str] = Field(default_factory=list)
    requires_lock: List[str] = Field(default_factory=list)

    @property
    def engines(self) -> Dict[str, EngineTag]:
        tags = {db: EngineTag.INNODB for db in self.transactional_only}
        tags.update({db: EngineTag.MYISAM for db in self.requires_lock})
        return tags

    @property
    def databases(self) -> List[str]:
        return [*self.transactional_only, *self.requires_lock]

    def strategy_for(self, database: str) -> DumpStrategy:
        if database in self.requires_lock:
            return DumpStrategy.PAUSED_REPLICATION
        return DumpStrategy.SINGLE_TRANSACTION


class BackupRun(BaseModel):
    """Aggregate record of one backup run."""
    server: str
    databases: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)
    classification: Classification = Field(default_factory=Classification)
    outcomes: List[BackupOutcome] = Field(default_factory=list)
    failures: List[BackupOutcome] = Field(default_factory=list)
    replication_paused: bool = False
    resume_failed: bool = False
    replication_lag_seconds: Optional[int] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: Optional[datetime] = None
    success: bool = False

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_report(self) -> Dict[str, Any]:
        """Machine-readable summary of the run."""
        return {
            "server": self.server,
            "success": self.success,
            "databases": self.databases,
            "excluded": self.excluded,
            "classification": {
                "transactional_only": self.classification.transactional_only,
                "requires_lock": self.classification.requires_lock,
            },
            "replication": {
                "paused": self.replication_paused,
                "resume_failed": self.resume_failed,
                "lag_seconds": self.replication_lag_seconds,
            },
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "failures": [
                {"database": f.database, "error": f.error} for f in self.failures
            ],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
