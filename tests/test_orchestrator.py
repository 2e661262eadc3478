"""Tests for backup orchestration."""

import io
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from mysql.connector import Error as MySQLError
from rich.console import Console

from replica_backup.backup.models import DumpStrategy
from replica_backup.backup.orchestrator import BackupOrchestrator, run_backup
from replica_backup.backup.reporter import BackupReporter
from replica_backup.backup.scheduler import PhaseScheduler, build_dump_flags
from replica_backup.core.exceptions import ConnectionError


PRIVILEGE_DENIED = MySQLError(msg="needs REPLICATION SLAVE ADMIN privilege", errno=1227)


@pytest.fixture
def connection(make_connection):
    """Scenario A server: alpha is InnoDB only, beta holds MyISAM tables."""
    return make_connection(["alpha", "beta", "information_schema"], myisam={"beta"}, lag=3)


@pytest.fixture
def events(connection):
    events = []
    connection.stop_replica_sql_thread.side_effect = lambda: events.append("pause")
    connection.start_replica_sql_thread.side_effect = lambda: events.append("resume")
    return events


def _orchestrator(config, connection, executor, reporter=None):
    return BackupOrchestrator(config, connection, executor=executor, reporter=reporter)


class TestBackupOrchestrator:
    """Test cases for BackupOrchestrator."""

    @pytest.mark.asyncio
    async def test_scenario_a_two_phases(self, backup_config, connection, events, make_executor, tmp_path):
        executor = make_executor()
        executor.events = events

        run = await _orchestrator(backup_config, connection, executor).run(tmp_path)

        assert run.databases == ["alpha", "beta"]
        assert run.excluded == ["information_schema"]
        assert run.classification.transactional_only == ["alpha"]
        assert run.classification.requires_lock == ["beta"]
        assert events == ["backup:alpha", "pause", "backup:beta", "resume"]
        assert run.replication_paused is True
        assert run.replication_lag_seconds == 3

        alpha, beta = executor.task_for("alpha"), executor.task_for("beta")
        assert alpha.strategy is DumpStrategy.SINGLE_TRANSACTION
        assert alpha.flags == build_dump_flags(DumpStrategy.SINGLE_TRANSACTION)
        assert "--single-transaction" in alpha.flags
        assert beta.strategy is DumpStrategy.PAUSED_REPLICATION
        assert "--single-transaction" not in beta.flags
        assert alpha.output_prefix == tmp_path

    @pytest.mark.asyncio
    async def test_scenario_b_all_succeed(self, backup_config, connection, make_executor, tmp_path):
        run = await _orchestrator(backup_config, connection, make_executor()).run(tmp_path)

        assert run.success is True
        assert run.failures == []
        assert len(run.outcomes) == 2
        assert run.finished_at is not None

    @pytest.mark.asyncio
    async def test_scenario_c_phase_two_failure(self, backup_config, connection, make_executor, tmp_path):
        executor = make_executor(errors={"beta": "disk full"})

        run = await _orchestrator(backup_config, connection, executor).run(tmp_path)

        assert run.success is False
        assert [(f.database, f.error) for f in run.failures] == [("beta", "disk full")]
        alpha = next(o for o in run.outcomes if o.database == "alpha")
        assert alpha.success is True
        connection.start_replica_sql_thread.assert_called_once()

    @pytest.mark.asyncio
    async def test_scenario_d_excluded_allow_list(self, backup_config, connection, make_executor, tmp_path):
        config = backup_config.model_copy(update={"databases": ["information_schema"]})
        executor = make_executor()

        run = await _orchestrator(config, connection, executor).run(tmp_path)

        assert run.databases == []
        assert run.excluded == ["information_schema"]
        assert run.success is True
        assert executor.tasks == []
        connection.stop_replica_sql_thread.assert_not_called()
        connection.start_replica_sql_thread.assert_not_called()

    @pytest.mark.asyncio
    async def test_phase_one_completes_before_phase_two(self, backup_config, make_connection, make_executor, tmp_path):
        connection = make_connection([f"inno{i}" for i in range(6)] + ["myisam1", "myisam2"], myisam={"myisam1", "myisam2"})
        events = []
        connection.stop_replica_sql_thread.side_effect = lambda: events.append("pause")
        executor = make_executor()
        executor.events = events

        await _orchestrator(backup_config, connection, executor).run(tmp_path)

        pause_at = events.index("pause")
        assert all(e.startswith("backup:inno") for e in events[:pause_at])
        assert len(events[:pause_at]) == 6
        assert all(e.startswith("backup:myisam") for e in events[pause_at + 1:])

    @pytest.mark.asyncio
    async def test_resume_called_once_when_every_phase_two_task_fails(
        self, backup_config, make_connection, make_executor, tmp_path
    ):
        connection = make_connection(["b1", "b2", "b3"], myisam={"b1", "b2", "b3"})
        executor = make_executor(errors={"b1": "x", "b2": "y"}, raises={"b3": RuntimeError("z")})

        run = await _orchestrator(backup_config, connection, executor).run(tmp_path)

        connection.start_replica_sql_thread.assert_called_once()
        assert len(run.failures) == 3
        assert run.success is False

    @pytest.mark.asyncio
    async def test_resume_called_when_phase_two_raises(self, backup_config, connection, make_executor, tmp_path):
        config = backup_config.model_copy(update={"databases": ["beta"]})

        with patch.object(PhaseScheduler, "run_phase", AsyncMock(side_effect=RuntimeError("scheduler crashed"))):
            with pytest.raises(RuntimeError):
                await _orchestrator(config, connection, make_executor()).run(tmp_path)

        connection.start_replica_sql_thread.assert_called_once()

    @pytest.mark.asyncio
    async def test_pause_denied_still_runs_phase_two(self, backup_config, connection, make_executor, tmp_path):
        connection.stop_replica_sql_thread.side_effect = PRIVILEGE_DENIED
        executor = make_executor()

        run = await _orchestrator(backup_config, connection, executor).run(tmp_path)

        assert executor.task_for("beta").strategy is DumpStrategy.PAUSED_REPLICATION
        assert run.replication_paused is False
        connection.start_replica_sql_thread.assert_not_called()
        assert run.success is True

    @pytest.mark.asyncio
    async def test_phase_two_skipped_without_myisam(self, backup_config, make_connection, make_executor, tmp_path):
        connection = make_connection(["alpha", "gamma"])

        run = await _orchestrator(backup_config, connection, make_executor()).run(tmp_path)

        connection.stop_replica_sql_thread.assert_not_called()
        connection.start_replica_sql_thread.assert_not_called()
        connection.seconds_behind_master.assert_not_called()
        assert run.success is True

    @pytest.mark.asyncio
    async def test_resume_failure_is_log_only_by_default(self, backup_config, connection, make_executor, tmp_path):
        connection.start_replica_sql_thread.side_effect = MySQLError(msg="boom")

        run = await _orchestrator(backup_config, connection, make_executor()).run(tmp_path)

        assert run.resume_failed is True
        assert run.failures == []
        assert run.success is True

    @pytest.mark.asyncio
    async def test_resume_failure_escalated_by_policy(self, backup_config, connection, make_executor, tmp_path):
        config = backup_config.model_copy(update={"fail_on_resume_error": True})
        connection.start_replica_sql_thread.side_effect = MySQLError(msg="boom")

        run = await _orchestrator(config, connection, make_executor()).run(tmp_path)

        assert run.resume_failed is True
        assert run.success is False

    @pytest.mark.asyncio
    async def test_listing_failure_aborts_run(self, backup_config, connection, make_executor, tmp_path):
        connection.list_databases.side_effect = ConnectionError("server gone away")
        executor = make_executor()

        with pytest.raises(ConnectionError):
            await _orchestrator(backup_config, connection, executor).run(tmp_path)

        assert executor.tasks == []

    @pytest.mark.asyncio
    async def test_reporter_output(self, backup_config, connection, make_executor, tmp_path):
        output = io.StringIO()
        reporter = BackupReporter(Console(file=output, width=120, color_system=None))
        executor = make_executor(errors={"beta": "disk full"})

        await _orchestrator(backup_config, connection, executor, reporter).run(tmp_path)

        text = output.getvalue()
        assert "Database Classification" in text
        assert "PHASE 1" in text and "PHASE 2" in text
        assert "• beta: disk full" in text


class TestRunBackup:
    """Test cases for run_backup."""

    @pytest.mark.asyncio
    async def test_full_pipeline(self, backup_config, connection, make_executor, tmp_path):
        now = datetime(2026, 10, 20, 3, 15)

        with patch('replica_backup.backup.orchestrator.ReplicaConnection') as mock_connection_cls:
            mock_connection_cls.return_value.__enter__.return_value = connection
            run = await run_backup(backup_config, executor=make_executor(), now=now)

        assert run.success is True
        mock_connection_cls.assert_called_once_with(backup_config)
        assert (tmp_path / "final" / "sql-replica-1" / "Tuesday" / "03").is_dir()
        assert not (tmp_path / "tmp" / "Tuesday" / "03").exists()

    @pytest.mark.asyncio
    async def test_connection_failure_is_fatal(self, backup_config, make_executor):
        with patch('replica_backup.backup.orchestrator.ReplicaConnection') as mock_connection_cls:
            mock_connection_cls.return_value.__enter__.side_effect = ConnectionError("refused")

            with pytest.raises(ConnectionError):
                await run_backup(backup_config, executor=make_executor())

    @pytest.mark.asyncio
    async def test_aborted_run_removes_tmp_directory(self, backup_config, connection, make_executor, tmp_path):
        now = datetime(2026, 10, 20, 3, 15)
        connection.list_databases.side_effect = ConnectionError("server gone away")

        with patch('replica_backup.backup.orchestrator.ReplicaConnection') as mock_connection_cls:
            mock_connection_cls.return_value.__enter__.return_value = connection
            with pytest.raises(ConnectionError):
                await run_backup(backup_config, executor=make_executor(), now=now)

        assert not (tmp_path / "tmp" / "Tuesday" / "03").exists()
        assert not list((tmp_path / "final" / "sql-replica-1" / "Tuesday").iterdir())
