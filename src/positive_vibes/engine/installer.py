"""Install/remove pipeline: registry resolution, target fan-out, manifest update.

Install:
    1. load the manifest (a missing file starts empty); refuse duplicates
       unless forced, in which case the recorded source is reinstalled
    2. a skill under the project's `skills/` directory wins, otherwise
       the first registry (in configured order) that has the name
    3. write to every target; the first target failure aborts without
       rolling back targets already written
    4. append the entry and save the manifest

The manifest is only written for names that fully succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from positive_vibes.core.config import LOCAL_SKILLS_DIR, LOCAL_SOURCE, SKILL_FILENAME
from positive_vibes.core.paths import is_safe_name
from positive_vibes.errors import (
    AlreadyInManifestError,
    BatchError,
    NotInManifestError,
    ResourceIOError,
    ResourceNotFoundError,
    SkillNotFoundError,
    VibesError,
)
from positive_vibes.manifest import (
    AgentRef,
    InstructionRef,
    Manifest,
    SkillRef,
    load_manifest,
    load_manifest_or_empty,
    save_manifest,
)
from positive_vibes.registry import Registry
from positive_vibes.skill import Skill, parse_skill
from positive_vibes.targets import InstallOptions, Target, all_targets, resolve_targets

logger = logging.getLogger(__name__)


@dataclass
class InstallOutcome:
    """Where a single resource came from and where it was written."""

    name: str
    kind: str
    registry: str
    destinations: list[Path] = field(default_factory=list)


@dataclass
class BatchResult:
    """Per-name results of a batch install or remove."""

    kind: str
    succeeded: list[str] = field(default_factory=list)
    skipped: list[tuple[str, VibesError]] = field(default_factory=list)
    failed: list[tuple[str, VibesError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def dedup(names: Iterable[str]) -> list[str]:
    """Drop blank and repeated names, keeping first occurrence order."""
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.add(name)
            out.append(name)
    return out


class Installer:
    """Resolves resources from registries and installs them to targets.

    Args:
        registries: Registries searched in order; the first hit wins.
        targets: Targets to write to. When None, the ``targets`` listed in
            the manifest being modified are used.
    """

    def __init__(
        self,
        registries: Sequence[Registry],
        targets: Sequence[Target] | None = None,
    ) -> None:
        self.registries = list(registries)
        self.targets = list(targets) if targets is not None else None

    def _targets_for(self, manifest: Manifest) -> list[Target]:
        if self.targets is not None:
            return self.targets
        return resolve_targets(manifest.targets)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _search_order(self, preferred: str) -> list[Registry]:
        first = next((r for r in self.registries if r.name == preferred), None) if preferred else None
        if first is None:
            return self.registries
        return [first] + [r for r in self.registries if r is not first]

    def resolve_skill(self, name: str, preferred: str = "") -> tuple[Skill, Path, Registry]:
        """Return the skill, its source directory and the registry that had it.

        The registry called *preferred* is searched first when given.

        Raises:
            SkillNotFoundError: If no registry has the skill.
        """
        for registry in self._search_order(preferred):
            try:
                skill, source_dir = registry.fetch(name)
            except ResourceNotFoundError:
                logger.debug("Skill %s not in registry %s", name, registry.name)
                continue
            return skill, source_dir, registry
        raise SkillNotFoundError(name)

    @staticmethod
    def resolve_local_skill(skill_dir: Path, name: str) -> tuple[Skill, Path] | None:
        """Return the skill kept in *skill_dir*, or None if it has no SKILL.md."""
        skill_file = Path(skill_dir) / SKILL_FILENAME
        if not skill_file.is_file():
            return None
        try:
            content = skill_file.read_bytes()
        except OSError as exc:
            raise ResourceIOError(skill_file, str(exc)) from exc
        skill = parse_skill(content)
        skill.name = name
        return skill, Path(skill_dir)

    def resolve_resource(self, kind: str, name: str, preferred: str = "") -> tuple[Path, str, Registry]:
        """Return ``(source_path, registry_relative_path, registry)`` for an
        instruction or agent.

        Raises:
            ResourceNotFoundError: If no registry provides *name*.
        """
        for registry in self._search_order(preferred):
            rel_path = registry.find_resource(kind, name)
            if rel_path is None:
                continue
            return registry.resource_path(kind, rel_path), rel_path, registry
        raise ResourceNotFoundError(name, kind=kind.rstrip("s"))

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def _skill_source(
        self, name: str, existing: SkillRef | None, project_root: Path
    ) -> tuple[Skill, Path, SkillRef]:
        """Pick where *name* comes from and the manifest entry describing it.

        An existing entry keeps its source. A new name is looked up in the
        project's ``skills/`` directory first, then in the registries.
        """
        if existing is not None and existing.path:
            local_dir = Path(existing.path)
            if not local_dir.is_absolute():
                local_dir = project_root / local_dir
            local = self.resolve_local_skill(local_dir, name)
            if local is None:
                raise SkillNotFoundError(name, registry=LOCAL_SOURCE)
            return local[0], local[1], existing

        if existing is None and is_safe_name(name):
            local = self.resolve_local_skill(project_root / LOCAL_SKILLS_DIR / name, name)
            if local is not None:
                return local[0], local[1], SkillRef(name=name, path=f"./{LOCAL_SKILLS_DIR}/{name}")

        skill, source_dir, registry = self.resolve_skill(name, existing.registry if existing else "")
        return skill, source_dir, existing or SkillRef(name=name, registry=registry.name)

    def install(
        self,
        name: str,
        manifest_path: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> InstallOutcome:
        """Install skill *name* to every target and record it in the manifest.

        With ``force``, a skill already in the manifest is reinstalled from
        its recorded source and the manifest entry is left as it is.

        Raises:
            AlreadyInManifestError: If the manifest already lists the skill
                and ``force`` is not set.
            SkillNotFoundError: If neither the project nor a registry has it.
            AlreadyInstalledError: If a target already has it and not ``force``.
        """
        manifest_path = Path(manifest_path)
        manifest = load_manifest_or_empty(manifest_path)
        existing = manifest.find("skills", name)
        if existing is not None and not opts.force:
            raise AlreadyInManifestError(name, kind="skill")

        project_root = manifest_path.parent
        skill, source_dir, entry = self._skill_source(name, existing, project_root)

        outcome = InstallOutcome(name=name, kind="skill", registry=entry.registry or LOCAL_SOURCE)
        for target in self._targets_for(manifest):
            outcome.destinations.append(target.install(skill, source_dir, project_root, opts))

        if existing is None:
            manifest.skills.append(entry)
            save_manifest(manifest, manifest_path)
        logger.info("Installed skill %s from %s", name, outcome.registry)
        return outcome

    def remove(self, name: str, manifest_path: Path) -> list[Path]:
        """Remove skill *name* from every known target and from the manifest.

        Raises:
            NotInManifestError: If the manifest does not list the skill.
        """
        manifest_path = Path(manifest_path)
        manifest = load_manifest(manifest_path)
        if not manifest.has("skills", name):
            raise NotInManifestError(name, kind="skill")

        project_root = manifest_path.parent
        removed = [
            target.skill_path(name, project_root)
            for target in all_targets()
            if target.remove_skill(name, project_root)
        ]

        manifest.remove("skills", name)
        save_manifest(manifest, manifest_path)
        logger.info("Removed skill %s", name)
        return removed

    # ------------------------------------------------------------------
    # Instructions / agents
    # ------------------------------------------------------------------

    def install_instruction(
        self,
        name: str,
        manifest_path: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> InstallOutcome:
        manifest_path = Path(manifest_path)
        manifest = load_manifest_or_empty(manifest_path)
        existing = manifest.find("instructions", name)
        if existing is not None and not opts.force:
            raise AlreadyInManifestError(name, kind="instruction")

        project_root = manifest_path.parent
        outcome = InstallOutcome(name=name, kind="instruction", registry="")
        if existing is not None and not existing.registry:
            content, source_path = existing.content, None
            if not content:
                source_path = Path(existing.path)
                if not source_path.is_absolute():
                    source_path = project_root / source_path
            outcome.registry = LOCAL_SOURCE
        else:
            content = ""
            source_path, rel_path, registry = self.resolve_resource(
                "instructions", name, existing.registry if existing else ""
            )
            outcome.registry = registry.name

        for target in self._targets_for(manifest):
            if existing is not None and existing.apply_to and target.name != existing.apply_to:
                continue
            outcome.destinations.append(
                target.install_instruction(name, content, source_path, project_root, opts)
            )

        if existing is None:
            manifest.instructions.append(InstructionRef(name=name, path=rel_path, registry=registry.name))
            save_manifest(manifest, manifest_path)
        logger.info("Installed instruction %s from %s", name, outcome.registry)
        return outcome

    def install_agent(
        self,
        name: str,
        manifest_path: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> InstallOutcome:
        manifest_path = Path(manifest_path)
        manifest = load_manifest_or_empty(manifest_path)
        existing = manifest.find("agents", name)
        if existing is not None and not opts.force:
            raise AlreadyInManifestError(name, kind="agent")

        project_root = manifest_path.parent
        if existing is not None and not existing.registry:
            source_path = Path(existing.path)
            if not source_path.is_absolute():
                source_path = project_root / source_path
            origin = LOCAL_SOURCE
        else:
            source_path, rel_path, registry = self.resolve_resource(
                "agents", name, existing.registry if existing else ""
            )
            origin = registry.name

        outcome = InstallOutcome(name=name, kind="agent", registry=origin)
        for target in self._targets_for(manifest):
            outcome.destinations.append(target.install_agent(name, source_path, project_root, opts))

        if existing is None:
            manifest.agents.append(AgentRef(name=name, path=rel_path, registry=origin))
            save_manifest(manifest, manifest_path)
        logger.info("Installed agent %s from %s", name, origin)
        return outcome

    def remove_instruction(self, name: str, manifest_path: Path) -> list[Path]:
        manifest_path = Path(manifest_path)
        manifest = load_manifest(manifest_path)
        if not manifest.has("instructions", name):
            raise NotInManifestError(name, kind="instruction")

        project_root = manifest_path.parent
        removed = [
            target.instruction_path(name, project_root)
            for target in all_targets()
            if target.remove_instruction(name, project_root)
        ]
        manifest.remove("instructions", name)
        save_manifest(manifest, manifest_path)
        return removed

    def remove_agent(self, name: str, manifest_path: Path) -> list[Path]:
        manifest_path = Path(manifest_path)
        manifest = load_manifest(manifest_path)
        if not manifest.has("agents", name):
            raise NotInManifestError(name, kind="agent")

        project_root = manifest_path.parent
        removed = [
            target.agent_path(name, project_root)
            for target in all_targets()
            if target.remove_agent(name, project_root)
        ]
        manifest.remove("agents", name)
        save_manifest(manifest, manifest_path)
        return removed

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def install_many(
        self,
        kind: str,
        names: Iterable[str],
        manifest_path: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> BatchResult:
        """Install each name, continuing past failures.

        Names already in the manifest are recorded as skipped.

        Raises:
            BatchError: After processing every name, if any of them failed.
        """
        install_one = {
            "skills": self.install,
            "instructions": self.install_instruction,
            "agents": self.install_agent,
        }[kind]

        result = BatchResult(kind=kind)
        for name in dedup(names):
            try:
                install_one(name, manifest_path, opts)
            except AlreadyInManifestError as exc:
                logger.info("Skipping %s: %s", name, exc)
                result.skipped.append((name, exc))
            except VibesError as exc:
                logger.debug("Install of %s failed: %s", name, exc)
                result.failed.append((name, exc))
            else:
                result.succeeded.append(name)

        if result.failed:
            raise BatchError(result)
        return result

    def remove_many(self, kind: str, names: Iterable[str], manifest_path: Path) -> BatchResult:
        """Remove each name, continuing past failures; missing names are skipped.

        Raises:
            BatchError: After processing every name, if any of them failed.
        """
        remove_one = {
            "skills": self.remove,
            "instructions": self.remove_instruction,
            "agents": self.remove_agent,
        }[kind]

        result = BatchResult(kind=kind)
        for name in dedup(names):
            try:
                remove_one(name, manifest_path)
            except NotInManifestError as exc:
                logger.info("Skipping %s: %s", name, exc)
                result.skipped.append((name, exc))
            except VibesError as exc:
                result.failed.append((name, exc))
            else:
                result.succeeded.append(name)

        if result.failed:
            raise BatchError(result)
        return result
