"""``positive-vibes apply``: install everything the manifest lists."""

from __future__ import annotations

import typer
from rich.console import Console

from positive_vibes.cli.resources import get_state, registries_for
from positive_vibes.engine import Applier, ApplyResult, OpStatus
from positive_vibes.errors import VibesError
from positive_vibes.manifest import (
    OverrideDiagnostics,
    compute_override_diagnostics,
    find_manifest,
    load_global_manifest,
    load_manifest,
    load_merged_manifest,
)
from positive_vibes.registry import GitRegistry
from positive_vibes.targets import InstallOptions

console = Console()


def format_override_warning(diagnostics: OverrideDiagnostics) -> str:
    lines = []
    for kind in ("registries", "skills", "instructions", "agents"):
        names = getattr(diagnostics, kind)
        if names:
            lines.append(f"  - {kind}: {', '.join(names)}")
    if not lines:
        return ""
    return "Project manifest overrides global entries:\n" + "\n".join(lines)


def print_apply_result(result: ApplyResult) -> None:
    for op in result.ops:
        if op.status is OpStatus.INSTALLED:
            console.print(f"  [green]installed[/green] {op.kind}: {op.name} -> {op.target}")
        elif op.status is OpStatus.SKIPPED:
            console.print(f"  [yellow]skipped[/yellow] {op.kind}: {op.name} -> {op.target} (already exists)")
        elif op.status is OpStatus.NOT_FOUND:
            console.print(f"  [red]not found[/red] {op.kind}: {op.name}")
        else:
            console.print(f"  [red]error[/red] {op.kind}: {op.error}")

    console.print()
    if result.installed:
        console.print(
            f"Done. Installed {result.installed}, skipped {result.skipped}, errors {len(result.errors)}."
        )
    elif result.skipped:
        console.print(f"Already in sync. {result.skipped} items up to date. Use --force to reinstall.")
    else:
        console.print("Nothing to install. Check your manifest.")


def apply(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite resources already present in targets"),
    link: bool = typer.Option(False, "--link", "-l", help="Symlink skills instead of copying them"),
    refresh: bool = typer.Option(False, "--refresh", help="Pull git registries before applying"),
    global_only: bool = typer.Option(False, "--global", help="Apply only the global manifest to this project"),
) -> None:
    """Install every resource in the manifest to every configured target."""
    state = get_state(ctx)
    global_path = state.global_manifest_path
    project_dir = state.project_dir

    try:
        if global_only:
            manifest = load_global_manifest(global_path)
            if manifest is None:
                console.print(f"[red]Error:[/red] no global manifest found at {global_path}")
                raise typer.Exit(1)
        else:
            project_path = find_manifest(project_dir)
            if project_path is None:
                console.print(
                    f"[red]Error:[/red] no manifest found in {project_dir} - run 'positive-vibes init' first"
                )
                raise typer.Exit(1)
            project_dir = project_path.parent
            manifest = load_merged_manifest(project_dir, global_path)
            warning = format_override_warning(
                compute_override_diagnostics(load_global_manifest(global_path), load_manifest(project_path))
            )
            if warning:
                console.print(f"[yellow]Warning:[/yellow] {warning}")

        registries = registries_for(manifest)
        if refresh:
            for registry in registries:
                if not isinstance(registry, GitRegistry):
                    continue
                try:
                    registry.refresh()
                except VibesError as e:
                    console.print(f"[yellow]Warning:[/yellow] refresh {registry.name} failed: {e}")

        console.print("Aligning your AI tools...\n")
        result = Applier(registries).apply(manifest, project_dir, InstallOptions(force=force, link=link))
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    print_apply_result(result)
    if not result.ok:
        raise typer.Exit(1)
