"""Synchronize a manifest onto every configured target.

Unlike :class:`~positive_vibes.engine.installer.Installer`, applying never
modifies the manifest and never stops at the first failure: every
item x target pair is attempted and reported as an :class:`ApplyOp`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Sequence

from positive_vibes.core.config import SKILL_FILENAME
from positive_vibes.errors import ResourceIOError, ResourceNotFoundError, VibesError
from positive_vibes.manifest import AgentRef, InstructionRef, Manifest, SkillRef
from positive_vibes.registry import Registry
from positive_vibes.skill import Skill, parse_skill
from positive_vibes.targets import InstallOptions, Target, resolve_targets

logger = logging.getLogger(__name__)


class OpStatus(str, Enum):
    INSTALLED = "installed"
    SKIPPED = "skipped"
    ERROR = "error"
    NOT_FOUND = "not_found"


@dataclass
class ApplyOp:
    """Outcome of one item on one target (``target`` is empty for not_found)."""

    kind: str
    name: str
    target: str
    status: OpStatus
    error: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "name": self.name,
            "target": self.target,
            "status": self.status.value,
            "error": self.error,
        }


@dataclass
class ApplyResult:
    ops: list[ApplyOp] = field(default_factory=list)

    def _count(self, status: OpStatus) -> int:
        return sum(1 for op in self.ops if op.status is status)

    @property
    def installed(self) -> int:
        return self._count(OpStatus.INSTALLED)

    @property
    def skipped(self) -> int:
        return self._count(OpStatus.SKIPPED)

    @property
    def errors(self) -> list[str]:
        return [op.error for op in self.ops if op.status in (OpStatus.ERROR, OpStatus.NOT_FOUND)]

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "installed": self.installed,
            "skipped": self.skipped,
            "errors": self.errors,
            "ops": [op.to_dict() for op in self.ops],
        }


class Applier:
    """Installs everything a manifest lists, resolving skills from *registries*."""

    def __init__(self, registries: Sequence[Registry]) -> None:
        self.registries = list(registries)

    def _registry(self, name: str) -> Registry | None:
        for registry in self.registries:
            if registry.name == name:
                return registry
        return None

    def _search_order(self, preferred: str) -> list[Registry]:
        first = self._registry(preferred) if preferred else None
        if first is None:
            return self.registries
        return [first] + [r for r in self.registries if r is not first]

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    def _resolve_skill(self, ref: SkillRef, project_dir: Path) -> tuple[Skill, Path] | None:
        if ref.path:
            local_dir = Path(ref.path)
            if not local_dir.is_absolute():
                local_dir = project_dir / local_dir
            skill_file = local_dir / SKILL_FILENAME
            if skill_file.is_file():
                try:
                    skill = parse_skill(skill_file.read_bytes())
                except (OSError, VibesError) as exc:
                    logger.warning("Ignoring local skill %s at %s: %s", ref.name, local_dir, exc)
                else:
                    skill.name = ref.name
                    return skill, local_dir

        for registry in self._search_order(ref.registry):
            try:
                return registry.fetch(ref.name)
            except ResourceNotFoundError:
                continue
        return None

    def _resource_source(self, kind: str, ref: InstructionRef | AgentRef, project_dir: Path) -> Path:
        if ref.registry:
            registry = self._registry(ref.registry)
            if registry is None:
                raise ResourceNotFoundError(ref.registry, kind="registry")
            rel_path = ref.path or registry.find_resource(kind, ref.name)
            if not rel_path:
                raise ResourceNotFoundError(ref.name, registry=registry.name, kind=kind.rstrip("s"))
            return registry.resource_path(kind, rel_path)

        source = Path(ref.path)
        if not source.is_absolute():
            source = project_dir / source
        return source

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(
        self,
        manifest: Manifest,
        project_dir: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> ApplyResult:
        """Install every skill, instruction and agent to every target.

        Items already present on a target are skipped unless ``force``.

        Raises:
            ManifestError: If the manifest fails validation.
        """
        manifest.validate()
        project_dir = Path(project_dir)
        targets = resolve_targets(manifest.targets)
        result = ApplyResult()

        for ref in manifest.skills:
            self._apply_skill(ref, targets, project_dir, opts, result)
        for inst in manifest.instructions:
            self._apply_instruction(inst, targets, project_dir, opts, result)
        for agent in manifest.agents:
            self._apply_agent(agent, targets, project_dir, opts, result)

        logger.info(
            "Apply finished: %d installed, %d skipped, %d errors",
            result.installed,
            result.skipped,
            len(result.errors),
        )
        return result

    def _apply_skill(
        self,
        ref: SkillRef,
        targets: list[Target],
        project_dir: Path,
        opts: InstallOptions,
        result: ApplyResult,
    ) -> None:
        try:
            resolved = self._resolve_skill(ref, project_dir)
        except VibesError as exc:
            result.ops.append(ApplyOp("skill", ref.name, "", OpStatus.ERROR, f"skill {ref.name}: {exc}"))
            return
        if resolved is None:
            result.ops.append(
                ApplyOp("skill", ref.name, "", OpStatus.NOT_FOUND, f"skill not found: {ref.name}")
            )
            return

        skill, source_dir = resolved
        for target in targets:
            if target.skill_exists(skill.name, project_dir) and not opts.force:
                result.ops.append(ApplyOp("skill", skill.name, target.name, OpStatus.SKIPPED))
                continue
            try:
                target.install(skill, source_dir, project_dir, opts)
            except VibesError as exc:
                result.ops.append(
                    ApplyOp(
                        "skill",
                        skill.name,
                        target.name,
                        OpStatus.ERROR,
                        f"install {skill.name} -> {target.name}: {exc}",
                    )
                )
            else:
                result.ops.append(ApplyOp("skill", skill.name, target.name, OpStatus.INSTALLED))

    def _apply_instruction(
        self,
        inst: InstructionRef,
        targets: list[Target],
        project_dir: Path,
        opts: InstallOptions,
        result: ApplyResult,
    ) -> None:
        selected = [t for t in targets if not inst.apply_to or t.name == inst.apply_to]
        source: Path | None = None
        if not inst.content:
            try:
                source = self._resource_source("instructions", inst, project_dir)
            except VibesError as exc:
                result.ops.append(
                    ApplyOp("instruction", inst.name, "", OpStatus.ERROR, f"instruction {inst.name}: {exc}")
                )
                return

        for target in selected:
            if target.instruction_exists(inst.name, project_dir) and not opts.force:
                result.ops.append(ApplyOp("instruction", inst.name, target.name, OpStatus.SKIPPED))
                continue
            try:
                target.install_instruction(inst.name, inst.content, source, project_dir, opts)
            except VibesError as exc:
                result.ops.append(
                    ApplyOp(
                        "instruction",
                        inst.name,
                        target.name,
                        OpStatus.ERROR,
                        f"install instruction {inst.name} -> {target.name}: {exc}",
                    )
                )
            else:
                result.ops.append(ApplyOp("instruction", inst.name, target.name, OpStatus.INSTALLED))

    def _apply_agent(
        self,
        agent: AgentRef,
        targets: list[Target],
        project_dir: Path,
        opts: InstallOptions,
        result: ApplyResult,
    ) -> None:
        try:
            source = self._resource_source("agents", agent, project_dir)
            if not source.is_file():
                raise ResourceIOError(source, "agent source file does not exist")
        except VibesError as exc:
            result.ops.append(ApplyOp("agent", agent.name, "", OpStatus.ERROR, f"agent {agent.name}: {exc}"))
            return

        for target in targets:
            if target.agent_exists(agent.name, project_dir) and not opts.force:
                result.ops.append(ApplyOp("agent", agent.name, target.name, OpStatus.SKIPPED))
                continue
            try:
                target.install_agent(agent.name, source, project_dir, opts)
            except VibesError as exc:
                result.ops.append(
                    ApplyOp(
                        "agent",
                        agent.name,
                        target.name,
                        OpStatus.ERROR,
                        f"install agent {agent.name} -> {target.name}: {exc}",
                    )
                )
            else:
                result.ops.append(ApplyOp("agent", agent.name, target.name, OpStatus.INSTALLED))
