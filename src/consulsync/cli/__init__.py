"""
consul-sync CLI -- back up, export, and import Consul KV data.

A single Click command. Action flags may be combined and always run in
the order backup, export, import.

Entry point: consulsync.cli:main
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..config import ConfigError, load_config
from ..engine import SyncEngine, SyncFatalError
from ..snapshot import list_snapshots
from ._common import (
    USAGE,
    console,
    logger,
    render_import_report,
    render_snapshot_report,
    setup_logging,
)


def _show_backups(directory: Path) -> None:
    backups = list_snapshots(directory)
    if not backups:
        console.print(f"\n[dim]No local backups in {escape(str(directory))}.[/]\n")
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Filename", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Created", style="dim")
    for b in backups:
        table.add_row(b["filename"], f"{b['size'] / 1024:.1f} KB", b["created"])

    console.print(f"\n[bold]{len(backups)}[/] backup(s):\n")
    console.print(table)
    console.print()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="consul-sync")
@click.option("--backup", "do_backup", is_flag=True, help="Backup local Consul KV.")
@click.option("--export", "do_export", is_flag=True, help="Export staging KV to the export file.")
@click.option("--import", "do_import", is_flag=True, help="Backup local + import staging into local.")
@click.option("--from-prefix", default="", help="Only import keys under this prefix (default root).")
@click.option("--to-prefix", default="", help="Rewrite imported keys to this prefix (default root).")
@click.option("--dry-run", is_flag=True, help="Show what --import would write without writing.")
@click.option("--list-backups", is_flag=True, help="List local backups in the backup directory.")
@click.option(
    "--config", "config_file", default=None, type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file (default: $CONSUL_SYNC_CONFIG).",
)
@click.option(
    "--workdir", default=None, type=click.Path(file_okay=False, path_type=Path),
    help="Directory for snapshot files (default: current directory).",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
def main(
    do_backup: bool,
    do_export: bool,
    do_import: bool,
    from_prefix: str,
    to_prefix: str,
    dry_run: bool,
    list_backups: bool,
    config_file: Optional[Path],
    workdir: Optional[Path],
    verbose: bool,
):
    """Sync Consul KV between a local and a staging cluster.

    Examples:

        consul-sync --export

        consul-sync --import --from-prefix=serviceA/ --to-prefix=localA/
    """
    if not (do_backup or do_export or do_import or list_backups):
        click.echo(USAGE)
        sys.exit(1)

    setup_logging(verbose)

    try:
        config = load_config(config_file=config_file)
    except ConfigError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/]")
        sys.exit(1)

    engine = SyncEngine(config, workdir=workdir.expanduser() if workdir else None)

    try:
        reports = engine.run(
            backup=do_backup,
            export=do_export,
            do_import=do_import,
            from_prefix=from_prefix,
            to_prefix=to_prefix,
            dry_run=dry_run,
        )
    except SyncFatalError as exc:
        logger.debug("Fatal error in %s", exc.operation, exc_info=True)
        console.print(f"[bold red]{escape(str(exc))}[/]")
        sys.exit(1)

    for report in reports:
        if report.operation == "import":
            render_import_report(report, dry_run=dry_run)
        else:
            render_snapshot_report(report)

    if list_backups:
        _show_backups(engine.backup_dir)
