from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable

import pytest

from positive_vibes.registry import EmbeddedRegistry
from tests.utils import GIT_ENV, GitRepo, write_skill


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME, XDG dirs and the registry cache at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.setenv("POSITIVE_VIBES_CACHE_DIR", str(tmp_path / "cache"))
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)
    return home


@pytest.fixture()
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture()
def bundle_root(tmp_path: Path) -> Path:
    """A small bundle: skills x, a, b (x has auxiliary files), one instruction, one agent."""
    root = tmp_path / "bundle"
    skills = root / "skills"
    x_dir = write_skill(skills, "x", "Skill x", "Instructions for x")
    (x_dir / "refs").mkdir()
    (x_dir / "refs" / "notes.md").write_text("notes\n", encoding="utf-8")
    (x_dir / "template.txt").write_text("template\n", encoding="utf-8")
    write_skill(skills, "a", "Skill a")
    write_skill(skills, "b", "Skill b")
    write_skill(skills, "code-review", "Review code", "# code-review\n\nWhen reviewing code, be kind.")

    (root / "instructions").mkdir()
    (root / "instructions" / "style.instructions.md").write_text("Use four spaces.\n", encoding="utf-8")
    (root / "agents").mkdir()
    (root / "agents" / "helper.agent.md").write_text("You are helpful.\n", encoding="utf-8")
    return root


@pytest.fixture()
def embedded(bundle_root: Path) -> EmbeddedRegistry:
    return EmbeddedRegistry(bundle_root=bundle_root)


@pytest.fixture()
def git_repo_factory(tmp_path: Path) -> Callable[[str], GitRepo]:
    """Build upstream repositories under ``tmp_path/upstream/<name>``."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    def _factory(name: str = "skills-repo") -> GitRepo:
        return GitRepo(tmp_path / "upstream" / name)

    return _factory
