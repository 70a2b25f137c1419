"""Registry abstraction: a local directory tree of skills, instructions and agents.

Both registry variants end up serving files from a directory on disk (the
package bundle or a git clone), so lookups are implemented once here and each
variant only decides how that directory is materialized.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from positive_vibes.core.config import (
    DEFAULT_AGENTS_PATH,
    DEFAULT_INSTRUCTIONS_PATH,
    DEFAULT_SKILLS_PATH,
    SKILL_FILENAME,
)
from positive_vibes.core.paths import is_safe_name
from positive_vibes.errors import ResourceIOError, ResourceNotFoundError, SkillNotFoundError
from positive_vibes.skill import Skill, parse_skill

logger = logging.getLogger(__name__)

RESOURCE_KINDS = ("instructions", "agents")

# Longest suffix first so "x.instructions.md" resolves to "x".
_RESOURCE_SUFFIXES: dict[str, tuple[str, ...]] = {
    "instructions": (".instructions.md", ".md"),
    "agents": (".agent.md", ".md"),
}


def resource_name_from_path(kind: str, rel_path: str) -> str:
    """Return the resource name for a registry file, or "" if it is not markdown."""
    base = Path(rel_path).name
    for suffix in _RESOURCE_SUFFIXES.get(kind, (".md",)):
        if base.endswith(suffix) and len(base) > len(suffix):
            return base[: -len(suffix)]
    return ""


def _contained(base: Path, rel_path: str) -> Path | None:
    """Join *rel_path* onto *base*, or return None if it escapes *base*."""
    candidate = (base / rel_path).resolve()
    try:
        candidate.relative_to(base.resolve())
    except ValueError:
        return None
    return candidate


class Registry(ABC):
    """A named source of skills, instructions and agents.

    Subclasses implement :meth:`root` (materializing the tree if needed) and
    may override :meth:`refresh`.
    """

    #: Human-readable variant label ("embedded", "git").
    kind = "registry"

    def __init__(
        self,
        name: str,
        skills_path: str = DEFAULT_SKILLS_PATH,
        instructions_path: str = DEFAULT_INSTRUCTIONS_PATH,
        agents_path: str = DEFAULT_AGENTS_PATH,
    ) -> None:
        self.name = name
        self.skills_path = skills_path or DEFAULT_SKILLS_PATH
        self.instructions_path = instructions_path or DEFAULT_INSTRUCTIONS_PATH
        self.agents_path = agents_path or DEFAULT_AGENTS_PATH

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @property
    def url(self) -> str:
        return ""

    @abstractmethod
    def root(self) -> Path:
        """Return the local directory backing this registry."""

    def refresh(self) -> bool:
        """Update the local materialization from upstream.

        Returns True if the served content changed. No-op by default.
        """
        return False

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def skills_root(self) -> Path:
        return self.root() / self.skills_path

    def _skill_dir(self, name: str) -> Path:
        if not is_safe_name(name):
            raise SkillNotFoundError(name, registry=self.name)
        return self.skills_root() / name

    def fetch(self, name: str) -> tuple[Skill, Path]:
        """Return the parsed skill and the directory holding its files.

        Raises:
            SkillNotFoundError: If ``<skills_path>/<name>/SKILL.md`` is absent.
            SkillParseError: If the document cannot be parsed.
        """
        skill_dir = self._skill_dir(name)
        skill_file = skill_dir / SKILL_FILENAME
        if not skill_file.is_file():
            raise SkillNotFoundError(name, registry=self.name)

        try:
            content = skill_file.read_bytes()
        except OSError as exc:
            raise ResourceIOError(skill_file, str(exc)) from exc

        skill = parse_skill(content)
        # The directory name is what gets installed, recorded and removed.
        if skill.name and skill.name != name:
            logger.warning(
                "Skill %s in registry %s declares name '%s'; using the directory name",
                name,
                self.name,
                skill.name,
            )
        skill.name = name
        logger.debug("Fetched skill %s from %s (%s)", name, self.name, skill_dir)
        return skill, skill_dir

    def list_skills(self) -> list[str]:
        """Return the sorted names of every directory holding a SKILL.md."""
        base = self.skills_root()
        if not base.is_dir():
            return []
        names = [
            entry.name
            for entry in base.iterdir()
            if entry.is_dir()
            and not entry.name.startswith(".")
            and (entry / SKILL_FILENAME).is_file()
        ]
        return sorted(names)

    def fetch_file(self, skill_name: str, rel_path: str) -> bytes:
        """Return the raw bytes of an auxiliary file inside a skill."""
        skill_dir = self._skill_dir(skill_name)
        if not (skill_dir / SKILL_FILENAME).is_file():
            raise SkillNotFoundError(skill_name, registry=self.name)

        target = _contained(skill_dir, rel_path)
        if target is None or not target.is_file():
            raise ResourceNotFoundError(f"{skill_name}/{rel_path}", registry=self.name, kind="file")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise ResourceIOError(target, str(exc)) from exc

    def list_files(self, skill_name: str, subdir: str = "") -> list[str]:
        """Return sorted immediate file names in ``<skill>/<subdir>``.

        Missing skills or subdirectories yield an empty list.
        """
        if not is_safe_name(skill_name):
            return []
        skill_dir = self.skills_root() / skill_name
        if not skill_dir.is_dir():
            return []
        directory = _contained(skill_dir, subdir or ".")
        if directory is None or not directory.is_dir():
            return []
        return sorted(entry.name for entry in directory.iterdir() if entry.is_file())

    # ------------------------------------------------------------------
    # Top-level instructions / agents
    # ------------------------------------------------------------------

    def resource_root(self, kind: str) -> Path:
        if kind == "instructions":
            return self.root() / self.instructions_path
        if kind == "agents":
            return self.root() / self.agents_path
        raise ValueError(f"unknown resource kind '{kind}' (expected one of {', '.join(RESOURCE_KINDS)})")

    def resource_path(self, kind: str, rel_path: str) -> Path:
        """Return the on-disk path of a top-level resource file."""
        base = self.resource_root(kind)
        target = _contained(base, rel_path)
        if target is None or not target.is_file():
            raise ResourceNotFoundError(rel_path, registry=self.name, kind=kind.rstrip("s"))
        return target

    def fetch_resource_file(self, kind: str, rel_path: str) -> bytes:
        target = self.resource_path(kind, rel_path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise ResourceIOError(target, str(exc)) from exc

    def list_resource_files(self, kind: str) -> list[str]:
        """Return sorted immediate file names under the kind's root."""
        base = self.resource_root(kind)
        if not base.is_dir():
            return []
        return sorted(entry.name for entry in base.iterdir() if entry.is_file())

    def find_resource(self, kind: str, name: str) -> str | None:
        """Return the relative path of the resource called *name*, if present."""
        for rel_path in self.list_resource_files(kind):
            if resource_name_from_path(kind, rel_path) == name:
                return rel_path
        return None

    def list_resources(self, kind: str) -> list[str]:
        """Return sorted, de-duplicated resource names for *kind*."""
        names = {resource_name_from_path(kind, rel) for rel in self.list_resource_files(kind)}
        names.discard("")
        return sorted(names)
