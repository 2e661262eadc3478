"""
Main CLI entry point for Replica Backup.

This module provides the command-line interface using Click
with Rich formatting for console output.
"""

import asyncio
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from replica_backup import __version__
from replica_backup.backup.orchestrator import run_backup
from replica_backup.backup.reporter import BackupReporter
from replica_backup.core.exceptions import ConfigurationError, ReplicaBackupError
from replica_backup.database.config import BackupConfig
from replica_backup.utils.logging import get_logger, setup_logging

console = Console()

EXIT_SUCCESS = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool):
    """
    Replica Backup

    Backs up the databases of a MariaDB replica, pausing replication
    while MyISAM databases are dumped.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if version:
        console.print(f"Replica Backup version {__version__}")
        sys.exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.option('--databases', '-d', help='Comma separated databases to back up (default: all)')
@click.option('--ssl/--no-ssl', 'ssl_enabled', default=None, help='Use SSL for dump connections')
@click.option('--max-workers', '-w', type=click.IntRange(min=1), help='Concurrent dumps per phase')
@click.option('--fail-on-resume-error/--log-resume-error', default=None,
              help='Mark the run failed if replication cannot be restarted')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write logs to this file')
@click.option('--json', 'json_output', is_flag=True, help='Print a JSON report after the run')
@click.pass_context
def run(ctx: click.Context, databases: Optional[str], ssl_enabled: Optional[bool],
        max_workers: Optional[int], fail_on_resume_error: Optional[bool],
        log_file: Optional[str], json_output: bool):
    """Back up all databases on the configured replica."""
    verbose = ctx.obj.get('verbose', False)
    setup_logging(level="DEBUG" if verbose else "INFO", log_file=log_file, console=Console(stderr=True))
    logger = get_logger("cli")

    try:
        config = BackupConfig.from_env(
            databases=databases,
            ssl_enabled=ssl_enabled,
            max_workers=max_workers,
            fail_on_resume_error=fail_on_resume_error,
        )
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(e.message)}")
        sys.exit(EXIT_FATAL)

    reporter = BackupReporter(console)
    try:
        backup_run = asyncio.run(run_backup(config, reporter=reporter))
    except ReplicaBackupError as e:
        logger.error(f"Backup aborted: {e.message}")
        console.print(f"[red]Backup aborted:[/red] {escape(e.message)}")
        sys.exit(EXIT_FATAL)

    if json_output:
        reporter.json_report(backup_run)

    sys.exit(EXIT_SUCCESS if backup_run.success else EXIT_FAILURES)


if __name__ == "__main__":
    main()
