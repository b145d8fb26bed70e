"""Shared utilities for the CLI.

Provides the Rich console instance, logging setup, and the report
rendering used after every operation.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import OutcomeKind, SyncReport

console = Console()
logger = logging.getLogger("consulsync.cli")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

USAGE = """Usage:
  consul-sync --backup
  consul-sync --export
  consul-sync --import

Import options:
  --from-prefix="serviceA/"
  --to-prefix="localA/"
"""


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def outcome_icon(kind: OutcomeKind) -> str:
    """Map an outcome to a Rich-formatted marker.

    Args:
        kind: Outcome category.

    Returns:
        str: Rich markup string for the outcome.
    """
    return {
        OutcomeKind.IMPORTED: "[bold green]OK[/]",
        OutcomeKind.PLANNED: "[cyan]PLAN[/]",
        OutcomeKind.SKIPPED: "[yellow]SKIP[/]",
        OutcomeKind.FAILED: "[bold red]FAIL[/]",
        OutcomeKind.MISSING: "[dim]GONE[/]",
    }.get(kind, "[dim]?[/]")


def render_snapshot_report(report: SyncReport) -> None:
    """Print the result of a backup or export."""
    border = "yellow" if report.failed else "green"
    lines = [
        f"[bold green]{report.operation.capitalize()} complete[/]",
        f"Store: {escape(report.store)}",
        f"Keys written: {report.record_count}",
        f"File: [cyan]{escape(str(report.snapshot_path))}[/]",
    ]
    if report.failed:
        lines.append(f"[red]Failed reads: {report.failed}[/]")
    if report.missing:
        lines.append(f"[dim]Vanished keys: {report.missing}[/]")
    console.print(Panel("\n".join(lines), title=report.operation.capitalize(), border_style=border))

    for o in report.outcomes:
        console.print(Text.assemble(
            "  ", Text.from_markup(outcome_icon(o.kind)), " ", o.source_key, " ", (o.detail, "dim"),
        ))


def render_import_report(report: SyncReport, dry_run: bool = False) -> None:
    """Print per-key results and the summary of an import."""
    if report.outcomes:
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("#", justify="right", style="dim")
        table.add_column("")
        table.add_column("Source", style="cyan")
        table.add_column("Destination", style="cyan")
        table.add_column("Detail", style="dim")
        total = len(report.outcomes)
        for o in report.outcomes:
            table.add_row(
                f"{o.index}/{total}",
                outcome_icon(o.kind),
                Text(o.source_key),
                Text(o.destination_key or ""),
                Text(o.detail),
            )
        console.print(table)

    title = "Import Plan" if dry_run else "Import Complete"
    border = "red" if report.failed else ("yellow" if report.skipped else "green")
    written = "Would write" if dry_run else "Written"
    console.print(Panel(
        f"Selected: {report.selected}\n"
        f"{written}: {report.count(OutcomeKind.PLANNED) if dry_run else report.imported}\n"
        f"Skipped: {report.skipped}\n"
        f"Failed: {report.failed}\n"
        f"Source: [cyan]{escape(str(report.snapshot_path))}[/]",
        title=title,
        border_style=border,
    ))
