"""
Console reporting for backup runs.

Renders the classification table, per-database progress and the final
pass/fail summary with Rich.
"""

import json
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from replica_backup.backup.models import BackupOutcome, BackupRun, Classification, DumpStrategy, EngineTag
from replica_backup.utils.helpers import format_bytes, format_duration


ENGINE_STYLES = {
    EngineTag.INNODB: "green",
    EngineTag.MYISAM: "yellow",
}


class BackupReporter:
    """Prints the human-readable view of a backup run."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _section(self, title: str, style: str = "bold") -> None:
        self.console.print()
        self.console.print(Text(title, style=style))
        self.console.print(Rule(style="dim"))

    def banner(self, server: str) -> None:
        self._section(f"MariaDB Backup - {server}", style="bold cyan")

    def build_classification_table(self, classification: Classification) -> Table:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Database")
        table.add_column("Engine")
        table.add_column("Strategy")

        engines = classification.engines
        for database in classification.databases:
            engine = engines[database]
            style = ENGINE_STYLES[engine]
            table.add_row(
                Text(database),
                Text(engine.value, style=style),
                Text(classification.strategy_for(database).description, style=style),
            )
        return table

    def classification(self, classification: Classification) -> None:
        self._section("Database Classification")
        self.console.print(self.build_classification_table(classification))

    def phase_header(self, phase: int, strategy: DumpStrategy) -> None:
        if strategy is DumpStrategy.SINGLE_TRANSACTION:
            self._section(f"▶ PHASE {phase}: InnoDB Databases", style="bold green")
            self.console.print("  Strategy: --single-transaction (no locking, parallel)", style="dim")
        else:
            self._section(f"▶ PHASE {phase}: MyISAM Databases", style="bold yellow")
            self.console.print("  Strategy: Pause replication SQL thread during backup", style="dim")

    def task_outcome(self, outcome: BackupOutcome) -> None:
        if outcome.success:
            self.console.print(
                f"  [green]✓[/green] {escape(outcome.database)} - [green]done[/green] "
                f"[dim]({format_bytes(outcome.size_bytes)}, {format_duration(outcome.elapsed_seconds)})[/dim]"
            )
        else:
            self.console.print(
                f"  [red]✗[/red] {escape(outcome.database)} - [red]failed[/red] [dim]({escape(outcome.error or '')})[/dim]",
                highlight=False,
            )

    def summary(self, run: BackupRun) -> None:
        self.console.print()
        self.console.print(Rule(style="dim"))

        if run.success:
            self.console.print("✓ All backups completed successfully!", style="bold green")
        elif run.failures:
            self.console.print(
                f"✗ Backup completed with {len(run.failures)} failure(s):", style="bold red"
            )
            for failure in run.failures:
                self.console.print(
                    f"  • {escape(failure.database)}: {escape(failure.error or '')}", style="red", highlight=False
                )
        if run.resume_failed:
            self.console.print("✗ Replication SQL thread could not be restarted", style="bold red")
        self.console.print()

    def json_report(self, run: BackupRun) -> None:
        self.console.print_json(json.dumps(run.to_report()))
