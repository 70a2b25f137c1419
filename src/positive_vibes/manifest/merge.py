"""Global + project manifest merging.

Merge rules:
- registries: merged by name, project wins; project entries come first so
  registry search order is project then global
- skills, instructions, agents: merged by name, project wins; global
  entries keep their position, project-only entries are appended
- targets: the project list replaces the global one when non-empty
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from .models import Manifest

T = TypeVar("T")


def _merge_by_name(global_items: list[T], project_items: list[T]) -> list[T]:
    merged: dict[str, T] = {}
    for item in global_items:
        merged[item.name] = item  # type: ignore[attr-defined]
    for item in project_items:
        merged[item.name] = item  # type: ignore[attr-defined]
    return list(merged.values())


def _project_first(global_items: list[T], project_items: list[T]) -> list[T]:
    project_names = {item.name for item in project_items}  # type: ignore[attr-defined]
    return project_items + [item for item in global_items if item.name not in project_names]  # type: ignore[attr-defined]


def merge_manifests(global_manifest: Manifest, project_manifest: Manifest) -> Manifest:
    """Return a new manifest overlaying *project_manifest* on *global_manifest*.

    Neither input is modified.
    """
    g = copy.deepcopy(global_manifest)
    p = copy.deepcopy(project_manifest)
    return Manifest(
        targets=p.targets if p.targets else g.targets,
        registries=_project_first(g.registries, p.registries),
        skills=_merge_by_name(g.skills, p.skills),
        instructions=_merge_by_name(g.instructions, p.instructions),
        agents=_merge_by_name(g.agents, p.agents),
    )


def resolve_manifest_paths(manifest: Manifest, base_dir: Path) -> None:
    """Make relative resource paths absolute, rooted at *base_dir*.

    Entries sourced from a registry keep their registry-relative path.
    """
    base_dir = Path(base_dir)
    for skill in manifest.skills:
        if skill.path and not Path(skill.path).is_absolute():
            skill.path = str(base_dir / skill.path)
    for inst in manifest.instructions:
        if inst.path and not inst.registry and not Path(inst.path).is_absolute():
            inst.path = str(base_dir / inst.path)
    for agent in manifest.agents:
        if agent.path and not agent.registry and not Path(agent.path).is_absolute():
            agent.path = str(base_dir / agent.path)


@dataclass
class OverrideDiagnostics:
    """Names defined in both manifests (the project copy wins)."""

    registries: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.registries or self.skills or self.instructions or self.agents)


def compute_override_diagnostics(
    global_manifest: Manifest | None,
    project_manifest: Manifest | None,
) -> OverrideDiagnostics:
    """Return, per kind, the sorted names the project manifest overrides."""
    if global_manifest is None or project_manifest is None:
        return OverrideDiagnostics()

    def _overlap(kind: str) -> list[str]:
        global_names = {entry.name for entry in getattr(global_manifest, kind)}
        return sorted(entry.name for entry in getattr(project_manifest, kind) if entry.name in global_names)

    return OverrideDiagnostics(
        registries=_overlap("registries"),
        skills=_overlap("skills"),
        instructions=_overlap("instructions"),
        agents=_overlap("agents"),
    )
