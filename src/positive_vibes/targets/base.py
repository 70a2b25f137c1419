"""Shared installation logic for AI tool targets.

Each target keeps skills, instructions and agents under one root directory
in the project (``.github``, ``.cursor``, ``.opencode``):

    <root>/skills/<name>/SKILL.md (+ auxiliary files)
    <root>/instructions/<name>.md
    <root>/agents/<name>.md
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from positive_vibes.core.config import SKILL_FILENAME
from positive_vibes.core.paths import is_safe_name
from positive_vibes.errors import AlreadyInstalledError, InvalidNameError, ResourceIOError
from positive_vibes.skill import Skill, render_skill

logger = logging.getLogger(__name__)

FILE_MODE = 0o644
DIR_MODE = 0o755


@dataclass(frozen=True)
class InstallOptions:
    """Flags controlling how resources are written.

    Attributes:
        force: Replace an existing destination instead of failing.
        link: Symlink skill directories instead of copying them.
    """

    force: bool = False
    link: bool = False


def _remove_path(path: Path) -> None:
    """Delete a file, symlink or directory tree at *path* (if present)."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _prune_empty_parents(start: Path, stop: Path) -> None:
    """Remove empty directories from *start* upward, never touching *stop*."""
    stop = stop.resolve()
    current = start
    while True:
        try:
            resolved = current.resolve()
        except OSError:
            return
        if resolved == stop or stop not in resolved.parents:
            return
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent


def _write_file(path: Path, data: bytes) -> None:
    path.write_bytes(data)
    os.chmod(path, FILE_MODE)


def _make_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    os.chmod(path, DIR_MODE)


def _check_name(name: str, kind: str) -> None:
    if not is_safe_name(name):
        raise InvalidNameError(name, kind=kind)


class Target:
    """An AI coding assistant with its own project directory conventions.

    Subclasses set ``name`` and ``root``.
    """

    name: str = ""
    root: str = ""
    display_name: str = ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    @property
    def skill_dir(self) -> Path:
        return Path(self.root) / "skills"

    @property
    def instruction_dir(self) -> Path:
        return Path(self.root) / "instructions"

    @property
    def agent_dir(self) -> Path:
        return Path(self.root) / "agents"

    def skill_path(self, skill_name: str, project_root: Path) -> Path:
        _check_name(skill_name, "skill")
        return Path(project_root) / self.skill_dir / skill_name

    def instruction_path(self, name: str, project_root: Path) -> Path:
        _check_name(name, "instruction")
        return Path(project_root) / self.instruction_dir / f"{name}.md"

    def agent_path(self, name: str, project_root: Path) -> Path:
        _check_name(name, "agent")
        return Path(project_root) / self.agent_dir / f"{name}.md"

    # ------------------------------------------------------------------
    # Existence
    # ------------------------------------------------------------------

    def skill_exists(self, skill_name: str, project_root: Path) -> bool:
        """Return True if ``<skill_dir>/<name>/SKILL.md`` exists (symlinks followed)."""
        return (self.skill_path(skill_name, project_root) / SKILL_FILENAME).exists()

    def instruction_exists(self, name: str, project_root: Path) -> bool:
        return self.instruction_path(name, project_root).exists()

    def agent_exists(self, name: str, project_root: Path) -> bool:
        return self.agent_path(name, project_root).exists()

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def _prepare_destination(self, name: str, dest: Path, opts: InstallOptions) -> None:
        if os.path.lexists(dest):
            if not opts.force:
                raise AlreadyInstalledError(name, dest)
            logger.debug("Removing existing %s for %s", dest, self.name)
            try:
                _remove_path(dest)
            except OSError as exc:
                raise ResourceIOError(dest, f"cannot remove existing install: {exc}") from exc
        try:
            _make_dir(dest.parent)
        except OSError as exc:
            raise ResourceIOError(dest.parent, str(exc)) from exc

    def install(
        self,
        skill: Skill,
        source_dir: Path | None,
        project_root: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> Path:
        """Materialize *skill* under this target and return the destination.

        Copy mode writes the rendered SKILL.md and copies every other file
        from *source_dir*, keeping its layout. Link mode creates a single
        symlink to *source_dir*.

        Raises:
            AlreadyInstalledError: If the destination exists and not ``force``.
            ResourceIOError: If any filesystem operation fails.
        """
        dest = self.skill_path(skill.name, project_root)
        self._prepare_destination(skill.name, dest, opts)

        if opts.link:
            if source_dir is None:
                raise ResourceIOError(dest, "link mode requires a source directory")
            try:
                os.symlink(Path(source_dir).resolve(), dest, target_is_directory=True)
            except OSError as exc:
                raise ResourceIOError(dest, f"cannot create symlink: {exc}") from exc
            logger.debug("Linked %s -> %s", dest, source_dir)
            return dest

        try:
            _make_dir(dest)
            _write_file(dest / SKILL_FILENAME, render_skill(skill).encode("utf-8"))
        except OSError as exc:
            raise ResourceIOError(dest, str(exc)) from exc

        if source_dir is not None:
            self._copy_auxiliary_files(Path(source_dir), dest)

        logger.debug("Installed skill %s for %s at %s", skill.name, self.name, dest)
        return dest

    @staticmethod
    def _copy_auxiliary_files(source_dir: Path, dest: Path) -> None:
        """Copy every file under *source_dir* except the top-level SKILL.md."""
        if not source_dir.is_dir():
            return
        for current, dirnames, filenames in os.walk(source_dir):
            dirnames.sort()
            rel_dir = Path(current).relative_to(source_dir)
            target_dir = dest / rel_dir
            try:
                _make_dir(target_dir)
            except OSError as exc:
                raise ResourceIOError(target_dir, str(exc)) from exc
            for filename in sorted(filenames):
                if rel_dir == Path(".") and filename == SKILL_FILENAME:
                    continue
                src_file = Path(current) / filename
                try:
                    _write_file(target_dir / filename, src_file.read_bytes())
                except OSError as exc:
                    raise ResourceIOError(src_file, f"cannot copy auxiliary file: {exc}") from exc

    def install_instruction(
        self,
        name: str,
        content: str,
        source_path: Path | None,
        project_root: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> Path:
        """Write ``<instruction_dir>/<name>.md`` from literal *content* or *source_path*."""
        dest = self.instruction_path(name, project_root)
        if content:
            data = content.encode("utf-8")
        elif source_path is not None:
            data = self._read_source(Path(source_path))
        else:
            raise ResourceIOError(dest, f"instruction '{name}' has neither content nor path")
        self._prepare_destination(name, dest, opts)
        try:
            _write_file(dest, data)
        except OSError as exc:
            raise ResourceIOError(dest, str(exc)) from exc
        logger.debug("Installed instruction %s for %s", name, self.name)
        return dest

    def install_agent(
        self,
        name: str,
        source_path: Path,
        project_root: Path,
        opts: InstallOptions = InstallOptions(),
    ) -> Path:
        """Copy *source_path* to ``<agent_dir>/<name>.md``."""
        dest = self.agent_path(name, project_root)
        data = self._read_source(Path(source_path))
        self._prepare_destination(name, dest, opts)
        try:
            _write_file(dest, data)
        except OSError as exc:
            raise ResourceIOError(dest, str(exc)) from exc
        logger.debug("Installed agent %s for %s", name, self.name)
        return dest

    @staticmethod
    def _read_source(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ResourceIOError(path, f"cannot read source: {exc}") from exc

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def _remove(self, path: Path, project_root: Path) -> bool:
        if not os.path.lexists(path):
            return False
        try:
            _remove_path(path)
        except OSError as exc:
            raise ResourceIOError(path, f"cannot remove: {exc}") from exc
        _prune_empty_parents(path.parent, Path(project_root) / self.root)
        logger.debug("Removed %s", path)
        return True

    def remove_skill(self, skill_name: str, project_root: Path) -> bool:
        """Delete the installed skill; returns False if it was not there."""
        return self._remove(self.skill_path(skill_name, project_root), project_root)

    def remove_instruction(self, name: str, project_root: Path) -> bool:
        return self._remove(self.instruction_path(name, project_root), project_root)

    def remove_agent(self, name: str, project_root: Path) -> bool:
        return self._remove(self.agent_path(name, project_root), project_root)
