"""``positive-vibes remove <type> NAME...``."""

from __future__ import annotations

import typer
from rich.console import Console

from positive_vibes.cli.commands.install import print_batch
from positive_vibes.cli.resources import (
    get_state,
    parse_resource_type,
    project_manifest_path,
)
from positive_vibes.engine import Installer
from positive_vibes.errors import BatchError, VibesError

console = Console()


def remove(
    ctx: typer.Context,
    resource_type: str = typer.Argument(..., help="skills, agents or instructions"),
    names: list[str] = typer.Argument(..., help="Names to remove"),
) -> None:
    """Remove resources from every target and from vibes.yaml."""
    state = get_state(ctx)
    try:
        kind = parse_resource_type(resource_type)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    manifest_path = project_manifest_path(state.project_dir)
    if not manifest_path.exists():
        console.print(f"[red]Error:[/red] no manifest found in {state.project_dir}")
        raise typer.Exit(1)

    installer = Installer(registries=[])
    try:
        result = installer.remove_many(kind, names, manifest_path)
    except BatchError as e:
        print_batch(e.result, "removed")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    print_batch(result, "removed")
