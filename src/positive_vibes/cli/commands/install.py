"""``positive-vibes install <type> NAME...``."""

from __future__ import annotations

import typer
from rich.console import Console

from positive_vibes.cli.resources import (
    get_state,
    load_merged_or_none,
    parse_resource_type,
    project_manifest_path,
    registries_for,
    singular,
)
from positive_vibes.engine import BatchResult, Installer
from positive_vibes.errors import BatchError, VibesError
from positive_vibes.targets import InstallOptions, resolve_targets

console = Console()


def print_batch(result: BatchResult, verb: str) -> None:
    kind = singular(result.kind)
    for name in result.succeeded:
        console.print(f"[green]✓[/green] {verb} {kind} [bold]{name}[/bold]")
    for name, reason in result.skipped:
        console.print(f"[yellow]-[/yellow] skipped {kind} [bold]{name}[/bold]: {reason}")
    for name, reason in result.failed:
        console.print(f"[red]✗[/red] {kind} [bold]{name}[/bold]: {reason}")


def install(
    ctx: typer.Context,
    resource_type: str = typer.Argument(..., help="skills, agents or instructions"),
    names: list[str] = typer.Argument(..., help="Names to install"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite resources already present in targets"),
    link: bool = typer.Option(False, "--link", "-l", help="Symlink skills instead of copying them"),
) -> None:
    """Install resources from the registries and record them in vibes.yaml."""
    state = get_state(ctx)
    try:
        kind = parse_resource_type(resource_type)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    manifest_path = project_manifest_path(state.project_dir)

    try:
        merged = load_merged_or_none(state)
        targets = resolve_targets(merged.targets) if merged is not None and merged.targets else None
        installer = Installer(registries_for(merged), targets=targets)
        result = installer.install_many(kind, names, manifest_path, InstallOptions(force=force, link=link))
    except BatchError as e:
        print_batch(e.result, "installed")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    print_batch(result, "installed")
    if result.succeeded:
        console.print(f"\nUpdated [cyan]{manifest_path.name}[/cyan]")
