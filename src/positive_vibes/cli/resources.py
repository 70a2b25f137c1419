"""Helpers shared by the CLI commands: resource types, manifest lookup, registries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import typer

from positive_vibes.core.config import MANIFEST_FILENAMES, RESOURCE_TYPES
from positive_vibes.core.paths import get_cache_root, get_global_manifest_path
from positive_vibes.errors import ManifestNotFoundError
from positive_vibes.manifest import Manifest, find_manifest, load_merged_manifest
from positive_vibes.registry import Registry, build_registries

logger = logging.getLogger(__name__)

_TYPE_ALIASES: dict[str, str] = {
    "skill": "skills",
    "skills": "skills",
    "agent": "agents",
    "agents": "agents",
    "instruction": "instructions",
    "instructions": "instructions",
}


@dataclass
class CliState:
    """Options from the top-level callback, stored on ``ctx.obj``."""

    project_dir: Path = field(default_factory=Path.cwd)
    verbose: bool = False

    @property
    def global_manifest_path(self) -> Path:
        return get_global_manifest_path()


def get_state(ctx: typer.Context) -> CliState:
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    state = CliState()
    ctx.obj = state
    return state


def parse_resource_type(value: str) -> str:
    """Map ``skill``/``skills`` (and friends) to the plural kind name."""
    try:
        return _TYPE_ALIASES[value.strip().lower()]
    except KeyError:
        raise typer.BadParameter(
            f"unknown resource type '{value}' (expected one of: {', '.join(RESOURCE_TYPES)})"
        ) from None


def singular(kind: str) -> str:
    return kind[:-1] if kind.endswith("s") else kind


def project_manifest_path(project_dir: Path) -> Path:
    """Return the existing project manifest, or where a new one would go."""
    return find_manifest(project_dir) or Path(project_dir) / MANIFEST_FILENAMES[0]


def load_merged_or_none(state: CliState) -> Manifest | None:
    """Merged global + project view, or None when neither manifest exists."""
    try:
        return load_merged_manifest(state.project_dir, state.global_manifest_path)
    except ManifestNotFoundError:
        logger.debug("No manifest found for %s", state.project_dir)
        return None


def registries_for(manifest: Manifest | None) -> list[Registry]:
    """Embedded registry first, then the manifest's git registries in order."""
    return build_registries(manifest, cache_root=get_cache_root())
