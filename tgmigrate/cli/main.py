"""tgmigrate CLI.

`tgmigrate migrate 004` brings the configured graph to version 004.
Connection details come from TIGER_GRAPH_* environment variables; every
option falls back to them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tgmigrate.cli import context
from tgmigrate.config import settings
from tgmigrate.exceptions import PartialFailureError, TGMigrateError
from tgmigrate.migrations.runner import MigrationResult, Migrator
from tgmigrate.migrations.source import MigrationSource

console = Console()

app = typer.Typer(
    name="tgmigrate",
    help="tgmigrate -- versioned GSQL migrations, tracked inside TigerGraph.",
    no_args_is_help=True,
)


def _print_result(result: MigrationResult) -> None:
    table = Table(title=f"Migration of {result.graph}" + (" (dry run)" if result.dry_run else ""))
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Direction", style="green")
    table.add_column("Status", style="white")

    for step in result.fast_forwarded:
        table.add_row(step, "up", "[dim]recorded (initial)[/dim]")
    for step in result.steps:
        if step in result.applied:
            status = "[green]applied[/green]"
        elif result.dry_run:
            status = "[yellow]pending[/yellow]"
        else:
            status = "[red]not applied[/red]"
        table.add_row(step, result.direction.value, status)

    if result.bootstrapped:
        console.print("[cyan]Created ClientMetadata graph.[/cyan]")
    if not result.steps and not result.fast_forwarded:
        console.print(
            f"[green]{result.graph} is already at version {result.to_version}.[/green]"
        )
        return
    console.print(table)


def _migrate(
    version: str,
    graph: str,
    init_version: str,
    migration_dir: Path,
    dry_run: bool,
    timeout: Optional[float],
) -> None:
    if not graph:
        console.print("[red]No graph given. Pass --graph or set TIGER_GRAPH_GRAPH.[/red]")
        raise typer.Exit(1)
    if not version:
        console.print(
            "[red]No version given. Pass VERSION or set TIGER_GRAPH_MIGRATION_VERSION.[/red]"
        )
        raise typer.Exit(1)

    migrator = Migrator(context.build_gateway())

    async def _run():
        return await migrator.migrate(
            graph,
            version,
            init_version=init_version or None,
            migration_dir=migration_dir,
            dry_run=dry_run,
            timeout=timeout,
        )

    try:
        result = context.run_async(_run())
    except PartialFailureError as e:
        console.print(escape(str(e)), style="bold red")
        raise typer.Exit(2)
    except TGMigrateError as e:
        console.print(f"[red]Migration failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    _print_result(result)


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
):
    context.configure_logging(log_level)


@app.command("migrate")
def migrate(
    version: str = typer.Argument(settings.migration_version, help="Target migration version, e.g. 004"),
    graph: str = typer.Option(settings.graph, "--graph", "-g", help="Graph to migrate"),
    init_version: str = typer.Option(
        settings.migration_init_version, "--init-version",
        help="Record versions up to this one as applied when ClientMetadata is first created",
    ),
    migration_dir: Path = typer.Option(settings.migration_dir, "--dir", "-d", help="Migration directory"),
    dry_run: bool = typer.Option(settings.dry_run, "--dry-run", help="Resolve the plan without running it"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline for the whole run, in seconds"),
):
    """Bring a graph to the given migration version."""
    _migrate(version, graph, init_version, migration_dir, dry_run, timeout)


@app.command("plan")
def plan(
    version: str = typer.Argument(settings.migration_version, help="Target migration version"),
    graph: str = typer.Option(settings.graph, "--graph", "-g", help="Graph to migrate"),
    init_version: str = typer.Option(settings.migration_init_version, "--init-version"),
    migration_dir: Path = typer.Option(settings.migration_dir, "--dir", "-d", help="Migration directory"),
):
    """Show which migrations would run, without running them."""
    _migrate(version, graph, init_version, migration_dir, True, None)


@app.command("status")
def status(
    graph: str = typer.Option(settings.graph, "--graph", "-g", help="Graph to inspect"),
):
    """Show whether ClientMetadata exists and the graph's current version."""
    gateway = context.build_gateway()

    async def _status():
        if not await gateway.is_initialised():
            return False, None
        return True, await gateway.latest_version(graph)

    try:
        initialised, current = context.run_async(_status())
    except TGMigrateError as e:
        console.print(f"[red]Status check failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if not initialised:
        console.print("[yellow]ClientMetadata graph not initialised.[/yellow]")
        return
    console.print(f"[bold]{graph}[/bold] is at version [cyan]{current or 'none'}[/cyan]")


@app.command("list")
def list_migrations(
    migration_dir: Path = typer.Option(settings.migration_dir, "--dir", "-d", help="Migration directory"),
):
    """List migration files found in the migration directory."""
    artifacts = MigrationSource(migration_dir).list_artifacts()
    if not artifacts:
        console.print(f"[dim]No migrations found in {migration_dir}.[/dim]")
        return

    table = Table(title=f"Migrations in {migration_dir}")
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Direction", style="green")
    table.add_column("Name", style="white")
    table.add_column("File", style="dim")
    for a in artifacts:
        table.add_row(a.version, a.direction.value, a.name, a.path.name)
    console.print(table)


@app.command("version")
def version_cmd():
    """Show tgmigrate version."""
    from tgmigrate import __version__
    console.print(f"tgmigrate v{__version__}")
