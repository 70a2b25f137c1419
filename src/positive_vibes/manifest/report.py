"""Offline configuration checks and global/project comparisons.

Nothing here touches the network: git registries are never cloned, so a
skill that could only come from one is reported as a warning rather than a
problem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from positive_vibes.core.config import EMBEDDED_REGISTRY_NAME, TARGET_CHOICES

from .merge import compute_override_diagnostics
from .models import Manifest

KINDS = ("skills", "instructions", "agents")


@dataclass
class ConfigProblem:
    field: str
    message: str


@dataclass
class ValidationReport:
    problems: list[ConfigProblem] = field(default_factory=list)
    warnings: list[ConfigProblem] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems

    def add(self, name: str, message: str) -> None:
        self.problems.append(ConfigProblem(name, message))

    def warn(self, name: str, message: str) -> None:
        self.warnings.append(ConfigProblem(name, message))

    def problem_for(self, name: str) -> str | None:
        for problem in self.problems:
            if problem.field == name:
                return problem.message
        return None


def validate_config(
    merged: Manifest,
    embedded_skills: Iterable[str],
    has_local: bool = True,
) -> ValidationReport:
    """Check a merged manifest without cloning anything.

    Args:
        merged: The effective manifest, relative paths already resolved.
        embedded_skills: Names served by the bundled registry.
        has_local: Whether a project manifest exists. A global manifest on
            its own is a base layer, so empty resources/targets are fine.
    """
    report = ValidationReport()
    embedded = set(embedded_skills)
    registries = {r.name for r in merged.registries}
    git_registries = [r.name for r in merged.registries if r.url]

    resource_count = len(merged.skills) + len(merged.instructions) + len(merged.agents)
    if has_local:
        if resource_count == 0:
            report.add("resources", "no resources defined (skills, instructions, or agents)")
        elif not merged.targets:
            report.add("targets", "no targets defined")

    for target in merged.targets:
        if target not in TARGET_CHOICES:
            report.add(target, f"invalid target (valid: {', '.join(TARGET_CHOICES)})")

    for skill in merged.skills:
        if skill.path and not skill.registry:
            if not Path(skill.path).exists():
                report.add(skill.name, f"path not found: {skill.path}")
        elif skill.registry:
            if skill.registry != EMBEDDED_REGISTRY_NAME and skill.registry not in registries:
                report.add(skill.name, f"registry not found: {skill.registry}")
            elif skill.registry == EMBEDDED_REGISTRY_NAME and skill.name not in embedded:
                report.add(skill.name, "not found in the embedded registry")
        elif skill.name not in embedded:
            if git_registries:
                report.warn(
                    skill.name,
                    f"not embedded; may come from {', '.join(git_registries)} (not checked offline)",
                )
            else:
                report.add(skill.name, "not found in any registry")

    for kind in ("instructions", "agents"):
        for entry in getattr(merged, kind):
            if entry.registry:
                if entry.registry != EMBEDDED_REGISTRY_NAME and entry.registry not in registries:
                    report.add(entry.name, f"registry not found: {entry.registry}")
            elif entry.path and not Path(entry.path).exists():
                report.add(entry.name, f"path not found: {entry.path}")

    return report


def _names(manifest: Manifest | None, kind: str) -> set[str]:
    if manifest is None:
        return set()
    return {entry.name for entry in getattr(manifest, kind)}


def diff_manifests(
    global_manifest: Manifest | None,
    project_manifest: Manifest | None,
    merged: Manifest,
) -> dict[str, Any]:
    """Summarize what each layer contributes to the effective manifest."""
    overrides = compute_override_diagnostics(global_manifest, project_manifest)
    return {
        "global_only": {
            kind: sorted(_names(global_manifest, kind) - _names(project_manifest, kind)) for kind in KINDS
        },
        "local_only": {
            kind: sorted(_names(project_manifest, kind) - _names(global_manifest, kind)) for kind in KINDS
        },
        "overrides": {
            "registries": overrides.registries,
            "skills": overrides.skills,
            "instructions": overrides.instructions,
            "agents": overrides.agents,
        },
        "effective_summary": {
            "registries": len(merged.registries),
            "skills": len(merged.skills),
            "instructions": len(merged.instructions),
            "agents": len(merged.agents),
            "targets": len(merged.targets),
        },
    }


def entry_sources(
    global_manifest: Manifest | None,
    project_manifest: Manifest | None,
    merged: Manifest,
) -> list[tuple[str, str, str]]:
    """Return ``(kind, name, source)`` for every merged entry.

    ``source`` is ``global``, ``local`` or ``local, overrides global``.
    """
    rows: list[tuple[str, str, str]] = []
    for kind in ("registries", *KINDS):
        in_global = _names(global_manifest, kind)
        in_local = _names(project_manifest, kind)
        for entry in getattr(merged, kind):
            if entry.name in in_local and entry.name in in_global:
                source = "local, overrides global"
            elif entry.name in in_local:
                source = "local"
            else:
                source = "global"
            rows.append((kind, entry.name, source))
    return rows
