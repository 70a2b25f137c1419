"""``positive-vibes refresh [NAME...]``: update git registry caches."""

from __future__ import annotations

import typer
from rich.console import Console

from positive_vibes.cli.resources import get_state, load_merged_or_none, registries_for
from positive_vibes.errors import VibesError
from positive_vibes.registry import GitRegistry

console = Console()


def refresh(
    ctx: typer.Context,
    names: list[str] | None = typer.Argument(None, help="Registries to refresh (default: all git registries)"),
) -> None:
    """Fetch the latest commits for branch-tracking git registries."""
    state = get_state(ctx)
    try:
        manifest = load_merged_or_none(state)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    git_registries = [r for r in registries_for(manifest) if isinstance(r, GitRegistry)]
    if names:
        known = {r.name for r in git_registries}
        unknown = [n for n in names if n not in known]
        if unknown:
            console.print(f"[red]Error:[/red] unknown git registr{'y' if len(unknown) == 1 else 'ies'}: {', '.join(unknown)}")
            raise typer.Exit(1)
        git_registries = [r for r in git_registries if r.name in names]

    if not git_registries:
        console.print("[dim]No git registries configured.[/dim]")
        return

    failed = False
    for registry in git_registries:
        try:
            moved = registry.refresh()
        except VibesError as e:
            console.print(f"[red]✗[/red] {registry.name}: {e}")
            failed = True
            continue
        if registry.cache.classify_ref().is_pinned:
            status = f"pinned to {registry.ref}"
        else:
            status = "updated" if moved else "up to date"
        console.print(f"[green]✓[/green] {registry.name}: {status}")

    if failed:
        raise typer.Exit(1)
