"""``positive-vibes config``: inspect and validate the effective configuration."""

from __future__ import annotations

import json as json_lib
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from ruamel.yaml import YAML

from positive_vibes.cli.resources import CliState, get_state
from positive_vibes.core.config import MANIFEST_FILENAMES
from positive_vibes.core.paths import get_cache_root
from positive_vibes.errors import ManifestNotFoundError, VibesError
from positive_vibes.manifest import (
    Manifest,
    diff_manifests,
    entry_sources,
    find_manifest,
    load_global_manifest,
    load_manifest,
    load_merged_manifest,
    resolve_manifest_paths,
    validate_config,
)
from positive_vibes.registry import EmbeddedRegistry

app = typer.Typer(help="Inspect and validate your vibes configuration", no_args_is_help=True)
console = Console()


def _load_layers(state: CliState) -> tuple[Manifest | None, Manifest | None, Path | None, Manifest]:
    """Return ``(global, project, project_path, merged)``.

    Raises:
        ManifestNotFoundError: If neither manifest exists.
    """
    global_manifest = load_global_manifest(state.global_manifest_path)
    project_path = find_manifest(state.project_dir)
    project_manifest = None
    if project_path is not None:
        project_manifest = load_manifest(project_path)
        resolve_manifest_paths(project_manifest, project_path.parent)
    merged = load_merged_manifest(state.project_dir, state.global_manifest_path)
    return global_manifest, project_manifest, project_path, merged


def _no_config(state: CliState) -> None:
    console.print(
        f"[red]Error:[/red] no config found (checked {state.global_manifest_path} and {state.project_dir})"
    )
    raise typer.Exit(1)


@app.command()
def show(
    ctx: typer.Context,
    sources: bool = typer.Option(False, "--sources", help="Show whether each entry comes from global or local config"),
) -> None:
    """Print the effective merged configuration as YAML."""
    state = get_state(ctx)
    try:
        global_manifest, project_manifest, _, merged = _load_layers(state)
    except ManifestNotFoundError:
        _no_config(state)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if not sources:
        yaml = YAML()
        yaml.default_flow_style = False
        yaml.indent(mapping=2, sequence=4, offset=2)
        yaml.dump(merged.to_dict(), sys.stdout)
        return

    table = Table(title="Effective configuration")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Source", style="magenta")
    for kind, name, source in entry_sources(global_manifest, project_manifest, merged):
        table.add_row(kind, name, source)
    console.print(table)
    console.print(f"Targets: {', '.join(merged.targets) or '(none)'}")


@app.command()
def paths(ctx: typer.Context) -> None:
    """Show where configuration and cache live."""
    state = get_state(ctx)
    global_path = state.global_manifest_path
    global_status = "[found]" if global_path.is_file() else "[not found]"

    local_path = find_manifest(state.project_dir)
    if local_path is None:
        local_display = state.project_dir / MANIFEST_FILENAMES[0]
        local_status = "[not found]"
    else:
        local_display = local_path
        local_status = "[found]" if local_path.name == MANIFEST_FILENAMES[0] else "[found, legacy name]"

    console.print(f"Global config:  {global_path}  {global_status}", markup=False, soft_wrap=True)
    console.print(f"Local config:   {local_display}  {local_status}", markup=False, soft_wrap=True)
    console.print(f"Project dir:    {state.project_dir}", markup=False, soft_wrap=True)
    console.print(f"Cache dir:      {get_cache_root()}", markup=False, soft_wrap=True)


@app.command()
def diff(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show what the global and local configs each contribute."""
    state = get_state(ctx)
    try:
        global_manifest, project_manifest, _, merged = _load_layers(state)
    except ManifestNotFoundError:
        _no_config(state)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    report = diff_manifests(global_manifest, project_manifest, merged)
    if json_output:
        print(json_lib.dumps(report, indent=2))
        return

    for section, title in (("global_only", "Global-only"), ("local_only", "Local-only"), ("overrides", "Overrides")):
        console.print(f"[bold]{title}:[/bold]")
        for kind, names in report[section].items():
            if names:
                console.print(f"  {kind}: {', '.join(names)}")
        console.print()
    console.print("[bold]Effective config summary:[/bold]")
    for kind, count in report["effective_summary"].items():
        console.print(f"  {kind}: {count}")


@app.command()
def validate(ctx: typer.Context) -> None:
    """Check the configuration for problems without touching the network."""
    state = get_state(ctx)
    try:
        _, project_manifest, _, merged = _load_layers(state)
    except ManifestNotFoundError:
        _no_config(state)
    except VibesError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    has_local = project_manifest is not None
    report = validate_config(merged, EmbeddedRegistry().list_skills(), has_local=has_local)

    console.print(f"Registries ({len(merged.registries)}):")
    for registry in merged.registries:
        console.print(f"  [green]ok[/green]  {registry.name}  {registry.url}")
    console.print(f"\nSkills ({len(merged.skills)}):")
    for skill in merged.skills:
        problem = report.problem_for(skill.name)
        if problem:
            console.print(f"  [red]FAIL[/red]  {skill.name}  {problem}")
        else:
            source = f"(local: {skill.path})" if skill.path else f"({skill.registry or 'any registry'})"
            console.print(f"  [green]ok[/green]  {skill.name}  {source}")
    console.print(f"\nTargets ({len(merged.targets)}):")
    for target in merged.targets:
        problem = report.problem_for(target)
        if problem:
            console.print(f"  [red]FAIL[/red]  {target}  {problem}")
        else:
            console.print(f"  [green]ok[/green]  {target}")

    other = [p for p in report.problems if p.field not in merged.targets and p.field not in merged.names("skills")]
    if other:
        console.print("\nProblems:")
        for problem in other:
            console.print(f"  [red]FAIL[/red]  {problem.field}  {problem.message}")
    if report.warnings:
        console.print("\nWarnings:")
        for warning in report.warnings:
            console.print(f"  [yellow]WARN[/yellow]  {warning.field}  {warning.message}")

    console.print()
    if not report.ok:
        console.print(f"{len(report.problems)} problem(s) found.")
        raise typer.Exit(1)
    if has_local:
        console.print("All checks passed.")
    else:
        console.print("No local vibes detected. Run 'positive-vibes init' to spread some good vibes here.")
