"""Manifest data models (``vibes.yaml``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from positive_vibes.core.config import (
    DEFAULT_AGENTS_PATH,
    DEFAULT_INSTRUCTIONS_PATH,
    DEFAULT_SKILLS_PATH,
    RESOURCE_TYPES,
    TARGET_CHOICES,
)
from positive_vibes.core.paths import is_safe_name
from positive_vibes.errors import ManifestError


def _str_field(data: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return str(value)
    return ""


def _require_mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ManifestError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


@dataclass
class SkillRef:
    name: str
    registry: str = ""
    path: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillRef:
        return cls(
            name=_str_field(data, "name"),
            registry=_str_field(data, "registry"),
            path=_str_field(data, "path"),
            version=_str_field(data, "version"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.registry:
            out["registry"] = self.registry
        if self.path:
            out["path"] = self.path
        if self.version:
            out["version"] = self.version
        return out


@dataclass
class InstructionRef:
    """An instruction file; exactly one of ``content`` or ``path`` is set."""

    name: str
    content: str = ""
    path: str = ""
    registry: str = ""
    apply_to: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstructionRef:
        return cls(
            name=_str_field(data, "name"),
            content=_str_field(data, "content"),
            path=_str_field(data, "path"),
            registry=_str_field(data, "registry"),
            apply_to=_str_field(data, "applyTo", "apply_to"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.path:
            out["path"] = self.path
        if self.content:
            out["content"] = self.content
        if self.registry:
            out["registry"] = self.registry
        if self.apply_to:
            out["applyTo"] = self.apply_to
        return out


@dataclass
class AgentRef:
    name: str
    path: str = ""
    registry: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentRef:
        return cls(
            name=_str_field(data, "name"),
            path=_str_field(data, "path"),
            registry=_str_field(data, "registry"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.path:
            out["path"] = self.path
        if self.registry:
            out["registry"] = self.registry
        return out


@dataclass
class RegistrySpec:
    """A git registry declaration.

    Older manifests nest the sub-paths under ``paths:``; both spellings load.
    """

    name: str
    url: str = ""
    ref: str = ""
    skills_path: str = DEFAULT_SKILLS_PATH
    instructions_path: str = DEFAULT_INSTRUCTIONS_PATH
    agents_path: str = DEFAULT_AGENTS_PATH

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistrySpec:
        legacy = data.get("paths") or {}
        if not isinstance(legacy, dict):
            raise ManifestError(f"registry '{data.get('name', '')}': 'paths' must be a mapping")
        return cls(
            name=_str_field(data, "name"),
            url=_str_field(data, "url"),
            ref=_str_field(data, "ref"),
            skills_path=_str_field(data, "skillsPath") or _str_field(legacy, "skills") or DEFAULT_SKILLS_PATH,
            instructions_path=(
                _str_field(data, "instructionsPath")
                or _str_field(legacy, "instructions")
                or DEFAULT_INSTRUCTIONS_PATH
            ),
            agents_path=_str_field(data, "agentsPath") or _str_field(legacy, "agents") or DEFAULT_AGENTS_PATH,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.url:
            out["url"] = self.url
        if self.ref:
            out["ref"] = self.ref
        if self.skills_path != DEFAULT_SKILLS_PATH:
            out["skillsPath"] = self.skills_path
        if self.instructions_path != DEFAULT_INSTRUCTIONS_PATH:
            out["instructionsPath"] = self.instructions_path
        if self.agents_path != DEFAULT_AGENTS_PATH:
            out["agentsPath"] = self.agents_path
        return out


@dataclass
class Manifest:
    targets: list[str] = field(default_factory=list)
    registries: list[RegistrySpec] = field(default_factory=list)
    skills: list[SkillRef] = field(default_factory=list)
    instructions: list[InstructionRef] = field(default_factory=list)
    agents: list[AgentRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Manifest:
        """Build a manifest from parsed YAML.

        Raises:
            ManifestError: On structurally invalid input or duplicate names.
        """
        if data is None:
            return cls()
        data = _require_mapping(data, "manifest")

        def _entries(key: str) -> list[dict[str, Any]]:
            raw = data.get(key) or []
            if not isinstance(raw, list):
                raise ManifestError(f"'{key}' must be a list")
            return [_require_mapping(item, f"{key}[{index}]") for index, item in enumerate(raw)]

        targets = data.get("targets") or []
        if isinstance(targets, str):
            targets = [targets]
        if not isinstance(targets, list):
            raise ManifestError("'targets' must be a list")

        manifest = cls(
            targets=[str(t) for t in targets],
            registries=[RegistrySpec.from_dict(item) for item in _entries("registries")],
            skills=[SkillRef.from_dict(item) for item in _entries("skills")],
            instructions=[InstructionRef.from_dict(item) for item in _entries("instructions")],
            agents=[AgentRef.from_dict(item) for item in _entries("agents")],
        )
        manifest.check_unique_names()
        return manifest

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"targets": list(self.targets)}
        if self.registries:
            out["registries"] = [r.to_dict() for r in self.registries]
        out["skills"] = [s.to_dict() for s in self.skills]
        if self.instructions:
            out["instructions"] = [i.to_dict() for i in self.instructions]
        if self.agents:
            out["agents"] = [a.to_dict() for a in self.agents]
        return out

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def entries(self, kind: str) -> list:
        if kind not in RESOURCE_TYPES:
            raise ValueError(f"unknown resource kind '{kind}'")
        return getattr(self, kind)

    def names(self, kind: str) -> list[str]:
        return [entry.name for entry in self.entries(kind)]

    def find(self, kind: str, name: str):
        for entry in self.entries(kind):
            if entry.name == name:
                return entry
        return None

    def has(self, kind: str, name: str) -> bool:
        return self.find(kind, name) is not None

    def remove(self, kind: str, name: str) -> bool:
        """Drop the entry called *name*; return whether one was removed."""
        items = self.entries(kind)
        for index, entry in enumerate(items):
            if entry.name == name:
                del items[index]
                return True
        return False

    def find_registry(self, name: str) -> RegistrySpec | None:
        for spec in self.registries:
            if spec.name == name:
                return spec
        return None

    @property
    def is_empty(self) -> bool:
        return not (self.skills or self.instructions or self.agents)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def check_unique_names(self) -> None:
        for kind in ("registries", "skills", "instructions", "agents"):
            seen: set[str] = set()
            for entry in getattr(self, kind):
                if entry.name in seen:
                    raise ManifestError(f"duplicate {kind} entry '{entry.name}'")
                seen.add(entry.name)

    def validate(self) -> None:
        """Check the manifest is complete enough to apply.

        Raises:
            ManifestError: Describing the first problem found.
        """
        if not self.targets:
            raise ManifestError("manifest must define at least one target")
        invalid = [t for t in self.targets if t not in TARGET_CHOICES]
        if invalid:
            raise ManifestError(
                f"invalid target(s): {', '.join(invalid)}. Valid targets: {', '.join(TARGET_CHOICES)}"
            )
        self.check_unique_names()
        for kind in ("skills", "instructions", "agents"):
            for entry in getattr(self, kind):
                if entry.name and not is_safe_name(entry.name):
                    raise ManifestError(f"invalid {kind} name '{entry.name}': must be a single path component")
        for index, spec in enumerate(self.registries):
            if not spec.name:
                raise ManifestError(f"registries[{index}]: name is required")
        for index, skill in enumerate(self.skills):
            if not skill.name:
                raise ManifestError(f"skills[{index}]: name is required")
        for index, inst in enumerate(self.instructions):
            if not inst.name:
                raise ManifestError(f"instructions[{index}]: name is required")
            if inst.content and inst.path:
                raise ManifestError(f"instruction '{inst.name}': content and path are mutually exclusive")
            if not inst.content and not inst.path:
                raise ManifestError(f"instruction '{inst.name}': one of content or path is required")
            if inst.apply_to and inst.apply_to not in TARGET_CHOICES:
                raise ManifestError(f"instruction '{inst.name}': invalid applyTo '{inst.apply_to}'")
        for index, agent in enumerate(self.agents):
            if not agent.name:
                raise ManifestError(f"agents[{index}]: name is required")
            if not agent.path:
                raise ManifestError(f"agent '{agent.name}': path is required")
