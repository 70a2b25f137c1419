"""Helpers shared by the positive-vibes test suite."""

from __future__ import annotations

import subprocess
from pathlib import Path

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Positive Vibes",
    "GIT_AUTHOR_EMAIL": "vibes@example.com",
    "GIT_COMMITTER_NAME": "Positive Vibes",
    "GIT_COMMITTER_EMAIL": "vibes@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=str(cwd), check=True, capture_output=True, text=True)


def skill_document(name: str, description: str = "", body: str = "") -> str:
    front = f"name: {name}\n"
    if description:
        front += f"description: {description}\n"
    return f"---\n{front}---\n\n{body or f'# {name}'}\n"


def write_skill(skills_root: Path, name: str, description: str = "", body: str = "") -> Path:
    skill_dir = skills_root / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(skill_document(name, description, body), encoding="utf-8")
    return skill_dir


class GitRepo:
    """A throwaway upstream repository used as a git registry URL."""

    def __init__(self, path: Path):
        self.path = path
        path.mkdir(parents=True, exist_ok=True)
        run(["git", "init", "--quiet"], cwd=path)
        run(["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=path)

    @property
    def url(self) -> str:
        return str(self.path)

    def add_skill(self, name: str, description: str = "", body: str = "") -> Path:
        return write_skill(self.path, name, description, body)

    def add_file(self, rel_path: str, content: str) -> Path:
        target = self.path / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    def commit(self, message: str) -> str:
        run(["git", "add", "-A"], cwd=self.path)
        run(["git", "commit", "--quiet", "-m", message], cwd=self.path)
        return self.head()

    def head(self) -> str:
        return run(["git", "rev-parse", "HEAD"], cwd=self.path).stdout.strip()

    def tag(self, name: str) -> None:
        run(["git", "tag", name], cwd=self.path)

    def branch(self, name: str) -> None:
        run(["git", "branch", name], cwd=self.path)

    def checkout(self, name: str) -> None:
        run(["git", "checkout", "--quiet", name], cwd=self.path)
