"""Skill registries: the embedded bundle and git repositories."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from positive_vibes.core.paths import get_registry_cache_path

from .base import RESOURCE_KINDS, Registry, resource_name_from_path
from .cache import GitCache, GitCommandError, RefKind
from .embedded import EmbeddedRegistry
from .git import GitRegistry

if TYPE_CHECKING:
    from positive_vibes.manifest.models import Manifest, RegistrySpec


def registry_from_spec(spec: "RegistrySpec", cache_root: Path | None = None) -> Registry:
    """Build the registry described by a manifest entry."""
    return GitRegistry(
        name=spec.name,
        url=spec.url,
        cache_path=get_registry_cache_path(spec.name, cache_root),
        ref=spec.ref,
        skills_path=spec.skills_path,
        instructions_path=spec.instructions_path,
        agents_path=spec.agents_path,
    )


def build_registries(
    manifest: "Manifest | None",
    cache_root: Path | None = None,
    include_embedded: bool = True,
) -> list[Registry]:
    """Return the embedded registry followed by the manifest's git registries.

    Order follows the manifest declaration order; entries without a URL are
    skipped (they can only name the embedded bundle).
    """
    registries: list[Registry] = [EmbeddedRegistry()] if include_embedded else []
    if manifest is None:
        return registries
    for spec in manifest.registries:
        if not spec.url:
            continue
        registries.append(registry_from_spec(spec, cache_root))
    return registries


__all__ = [
    "RESOURCE_KINDS",
    "EmbeddedRegistry",
    "GitCache",
    "GitCommandError",
    "GitRegistry",
    "RefKind",
    "Registry",
    "build_registries",
    "registry_from_spec",
    "resource_name_from_path",
]
