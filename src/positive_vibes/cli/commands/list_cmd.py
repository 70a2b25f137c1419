"""``positive-vibes list <type>``: what the registries offer and what is installed."""

from __future__ import annotations

import json as json_lib
import logging
from dataclasses import asdict, dataclass

import typer
from rich.console import Console
from rich.table import Table

from positive_vibes.cli.resources import (
    get_state,
    load_merged_or_none,
    parse_resource_type,
    registries_for,
    singular,
)
from positive_vibes.errors import VibesError
from positive_vibes.manifest import Manifest
from positive_vibes.registry import Registry

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ListedItem:
    name: str
    registry: str
    installed: bool
    description: str = ""


def _registry_names(registry: Registry, kind: str) -> list[str]:
    if kind == "skills":
        return registry.list_skills()
    return registry.list_resources(kind)


def _description(registry: Registry, kind: str, name: str) -> str:
    if kind != "skills":
        return ""
    try:
        skill, _ = registry.fetch(name)
    except VibesError:
        return ""
    return skill.description


def collect_items(
    kind: str,
    manifest: Manifest | None,
    registries: list[Registry],
    registry_filter: str | None = None,
) -> tuple[list[ListedItem], list[str]]:
    """Return available items (first registry wins per name) and warnings.

    Manifest entries that no registry provides (local paths, unreachable
    registries) are appended so installed resources are always listed.
    """
    installed = set(manifest.names(kind)) if manifest is not None else set()
    items: dict[str, ListedItem] = {}
    warnings: list[str] = []

    for registry in registries:
        if registry_filter and registry.name != registry_filter:
            continue
        try:
            names = _registry_names(registry, kind)
        except VibesError as e:
            logger.debug("Listing %s failed: %s", registry.name, e)
            warnings.append(f"registry '{registry.name}' unavailable: {e}")
            continue
        for name in names:
            if name in items:
                continue
            items[name] = ListedItem(
                name=name,
                registry=registry.name,
                installed=name in installed,
                description=_description(registry, kind, name),
            )

    if manifest is not None and not registry_filter:
        for entry in manifest.entries(kind):
            if entry.name not in items:
                source = entry.registry or entry.path or "manifest"
                items[entry.name] = ListedItem(name=entry.name, registry=source, installed=True)

    return sorted(items.values(), key=lambda item: item.name), warnings


def list_resources(
    ctx: typer.Context,
    resource_type: str = typer.Argument(..., help="skills, agents or instructions"),
    registry: str | None = typer.Option(None, "--registry", "-r", help="Only list this registry"),
    installed_only: bool = typer.Option(False, "--installed-only", help="Only list resources in the manifest"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON for scripting"),
) -> None:
    """List available resources of one type."""
    state = get_state(ctx)
    try:
        kind = parse_resource_type(resource_type)
        manifest = load_merged_or_none(state)
    except (typer.BadParameter, VibesError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    registries = registries_for(manifest)
    if registry and all(r.name != registry for r in registries):
        console.print(f"[red]Error:[/red] unknown registry '{registry}'")
        raise typer.Exit(1)

    items, warnings = collect_items(kind, manifest, registries, registry)
    if installed_only:
        items = [item for item in items if item.installed]

    if json_output:
        print(json_lib.dumps({"type": kind, "items": [asdict(item) for item in items], "warnings": warnings}, indent=2))
        return

    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if not items:
        console.print(f"[dim]No {kind} found.[/dim]")
        return

    table = Table(title=f"Available {kind}")
    table.add_column("Name", style="bold")
    table.add_column("Registry", style="cyan")
    table.add_column("Installed", justify="center")
    if kind == "skills":
        table.add_column("Description")

    for item in items:
        row = [item.name, item.registry, "[green]✓[/green]" if item.installed else ""]
        if kind == "skills":
            row.append(item.description)
        table.add_row(*row)

    console.print(table)
    console.print(f"[dim]{len(items)} {singular(kind) if len(items) == 1 else kind}[/dim]")
