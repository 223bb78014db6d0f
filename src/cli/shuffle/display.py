"""Display functions for the shuffle command."""

from typing import List

from rich import box
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from cli.core.context import Context
from colshuffle.runner import (
    RunReport,
    STATUS_FAILED,
    STATUS_PLANNED,
    STATUS_SHUFFLED,
    STATUS_SKIPPED,
)
from colshuffle.shuffle import ShuffleResult
from colshuffle.specs import TableSpec

USAGE = "Usage: table-shuffle <database> table1:id_col:col1,col2 table2:id_col:col3"

STATUS_STYLES = {
    STATUS_SHUFFLED: "green",
    STATUS_PLANNED: "cyan",
    STATUS_SKIPPED: "yellow",
    STATUS_FAILED: "red",
}


def display_usage(ctx: Context):
    """Print usage guidance for a malformed invocation."""
    ctx.stderr_console.print(USAGE, markup=False)
    ctx.stderr_console.print(
        "  Each table is given as table:id_column:col1,col2,...  (see --help for options)",
        style="dim", markup=False,
    )


class ConsoleReporter:
    """Prints one line per stage per table."""

    def __init__(self, ctx: Context):
        self.ctx = ctx

    def validating(self, spec: TableSpec):
        self.ctx.console.print(f"🔍 Validating structure for table '{escape(spec.table)}'...")

    def validation_warning(self, message: str):
        self.ctx.console.print(f"⚠️  {escape(message)}", style="yellow")

    def skipped(self, label: str, reasons: List[str]):
        for reason in reasons:
            self.ctx.stderr_console.print(f"❌ {escape(reason)}", style="red")
        self.ctx.console.print(f"⚠️  Skipping '{escape(label)}' due to validation errors", style="yellow")

    def shuffling(self, spec: TableSpec):
        self.ctx.console.print(
            f"🔄 Shuffling '{escape(spec.table)}' "
            f"(ID: {escape(spec.id_column)}, Columns: {escape(' '.join(spec.columns))})"
        )

    def shuffled(self, result: ShuffleResult):
        self.ctx.console.print(
            f"✅ Successfully shuffled '{escape(result.spec.table)}' "
            f"({result.rows:,} rows in {result.elapsed:.2f}s)",
            style="green",
        )

    def planned(self, result: ShuffleResult):
        self.ctx.console.print(f"📝 Dry run for '{escape(result.spec.table)}', statements that would run:", style="cyan")
        if self.ctx.verbose:
            self.ctx.console.print(Syntax('\n\n'.join(result.statements), 'sql', word_wrap=True))
        else:
            self.ctx.console.print('\n\n'.join(result.statements), markup=False, highlight=False)

    def failed(self, spec: TableSpec, error: Exception):
        self.ctx.stderr_console.print(f"❌ Shuffle failed for '{escape(spec.table)}': {escape(str(error))}", style="red")


def display_summary(ctx: Context, report: RunReport):
    """Display the per-table outcome table."""
    if not report.outcomes:
        return

    table = Table(title=f"Shuffle Summary: {escape(report.database)}", box=box.SIMPLE_HEAD)
    table.add_column("Table", style="cyan bold")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Details")

    for outcome in report.outcomes:
        style = STATUS_STYLES.get(outcome.status, "")
        rows = f"{outcome.result.rows:,}" if outcome.status == STATUS_SHUFFLED else "-"
        details = "; ".join(outcome.messages) if outcome.messages else ""
        table.add_row(escape(outcome.label), f"[{style}]{outcome.status}[/]", rows, escape(details))

    ctx.console.print()
    ctx.console.print(table)

    counts = [f"{report.count(s)} {s}" for s in (STATUS_SHUFFLED, STATUS_PLANNED, STATUS_SKIPPED, STATUS_FAILED)
              if report.count(s)]
    ctx.console.print(", ".join(counts), style="bold")
