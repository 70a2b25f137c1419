"""``positive-vibes show <type> NAME``."""

from __future__ import annotations

import json as json_lib
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from positive_vibes.cli.resources import (
    get_state,
    load_merged_or_none,
    parse_resource_type,
    registries_for,
    singular,
)
from positive_vibes.errors import ResourceIOError, ResourceNotFoundError, SkillNotFoundError, VibesError
from positive_vibes.manifest import Manifest
from positive_vibes.registry import Registry

console = Console()


def _describe_skill(name: str, registries: list[Registry]) -> dict[str, Any]:
    for registry in registries:
        try:
            skill, source_dir = registry.fetch(name)
        except ResourceNotFoundError:
            continue
        details = skill.to_dict()
        details["registry"] = registry.name
        details["source"] = str(source_dir)
        details["files"] = [f for f in registry.list_files(name) if f != "SKILL.md"]
        return details
    raise SkillNotFoundError(name)


def _describe_resource(kind: str, name: str, registries: list[Registry]) -> dict[str, Any]:
    for registry in registries:
        rel_path = registry.find_resource(kind, name)
        if rel_path is None:
            continue
        content = registry.fetch_resource_file(kind, rel_path).decode("utf-8", errors="replace")
        return {"name": name, "registry": registry.name, "path": rel_path, "content": content}
    raise ResourceNotFoundError(name, kind=singular(kind))


def describe(kind: str, name: str, manifest: Manifest | None, registries: list[Registry]) -> dict[str, Any]:
    """Collect everything known about one resource.

    Manifest entries with inline content or a local path are described from
    the manifest; everything else comes from the first registry providing it.
    """
    entry = manifest.find(kind, name) if manifest is not None else None

    if kind == "instructions" and entry is not None and entry.content:
        details: dict[str, Any] = {"name": name, "registry": "", "path": "", "content": entry.content}
    elif kind != "skills" and entry is not None and entry.path and not entry.registry:
        path = Path(entry.path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ResourceIOError(path, f"cannot read {singular(kind)} '{name}': {e}") from e
        details = {"name": name, "registry": "", "path": str(path), "content": content}
    elif kind == "skills":
        details = _describe_skill(name, registries)
    else:
        details = _describe_resource(kind, name, registries)

    details["type"] = singular(kind)
    details["installed"] = entry is not None
    if kind == "instructions" and entry is not None and entry.apply_to:
        details["applyTo"] = entry.apply_to
    return details


def show(
    ctx: typer.Context,
    resource_type: str = typer.Argument(..., help="skills, agents or instructions"),
    name: str = typer.Argument(..., help="Resource name"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON for scripting"),
) -> None:
    """Show details for a single resource."""
    state = get_state(ctx)
    try:
        kind = parse_resource_type(resource_type)
        manifest = load_merged_or_none(state)
        details = describe(kind, name, manifest, registries_for(manifest))
    except (typer.BadParameter, VibesError) as e:
        if json_output:
            print(json_lib.dumps({"error": str(e)}, indent=2))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json_lib.dumps(details, indent=2))
        return

    lines = [f"[bold]{details['type'].title()}:[/bold] {details['name']}"]
    if details.get("registry"):
        lines.append(f"[bold]Registry:[/bold] {details['registry']}")
    if details.get("path"):
        lines.append(f"[bold]Path:[/bold] {details['path']}")
    for label, key in (("Description", "description"), ("Version", "version"), ("Author", "author")):
        if details.get(key):
            lines.append(f"[bold]{label}:[/bold] {details[key]}")
    for label, key in (("Tags", "tags"), ("Globs", "globs"), ("Files", "files")):
        if details.get(key):
            lines.append(f"[bold]{label}:[/bold] {', '.join(details[key])}")
    if details.get("applyTo"):
        lines.append(f"[bold]Applies to:[/bold] {details['applyTo']}")
    lines.append(f"[bold]Installed:[/bold] {'yes' if details['installed'] else 'no'}")

    console.print(Panel("\n".join(lines), title=details["name"], border_style="cyan"))
    body = details.get("instructions") or details.get("content") or ""
    if body:
        console.print(Markdown(body))
