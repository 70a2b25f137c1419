"""``positive-vibes init``: write a starter manifest."""

from __future__ import annotations

import typer
from rich.console import Console

from positive_vibes.cli.resources import get_state, project_manifest_path
from positive_vibes.core.config import MANIFEST_FILENAMES
from positive_vibes.engine import scan_project
from positive_vibes.errors import VibesError
from positive_vibes.manifest import Manifest, SkillRef, save_manifest

console = Console()

MANIFEST_HEADER = """\
# positive-vibes manifest
# Run 'positive-vibes apply' to install these resources into your AI tools.
"""


def init(
    ctx: typer.Context,
    global_manifest: bool = typer.Option(False, "--global", help="Create the user-wide manifest instead"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing manifest"),
) -> None:
    """Scan the project and write a starter vibes.yaml."""
    state = get_state(ctx)

    if global_manifest:
        path = state.global_manifest_path
    else:
        path = project_manifest_path(state.project_dir)
        # An inherited manifest from a parent directory does not count.
        if path.parent != state.project_dir.resolve():
            path = state.project_dir / MANIFEST_FILENAMES[0]

    if path.exists() and not force:
        console.print(f"[red]Error:[/red] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    scan = scan_project(state.project_dir)
    manifest = Manifest(
        targets=list(scan.suggested_targets),
        skills=[SkillRef(name=name) for name in scan.recommended_skills],
    )

    try:
        save_manifest(manifest, path, header=MANIFEST_HEADER)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not global_manifest:
        console.print(f"Detected language: [cyan]{scan.language}[/cyan]")
    console.print(f"[green]✓[/green] Created {path}")
    console.print("Run 'positive-vibes apply' to install everywhere!")
