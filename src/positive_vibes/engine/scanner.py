"""Project detection used by ``init`` to suggest a starter manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from positive_vibes.core.config import DEFAULT_RECOMMENDED_SKILLS, TARGET_CHOICES

# Checked in order; the first marker file present decides the language.
LANGUAGE_MARKERS: tuple[tuple[str, str], ...] = (
    ("go.mod", "go"),
    ("package.json", "node"),
    ("pyproject.toml", "python"),
    ("requirements.txt", "python"),
)


@dataclass
class ScanResult:
    language: str = "unknown"
    recommended_skills: list[str] = field(default_factory=lambda: list(DEFAULT_RECOMMENDED_SKILLS))
    suggested_targets: list[str] = field(default_factory=lambda: list(TARGET_CHOICES))


def scan_project(directory: Path) -> ScanResult:
    """Guess the project's language from well-known marker files."""
    result = ScanResult()
    directory = Path(directory)
    for marker, language in LANGUAGE_MARKERS:
        if (directory / marker).exists():
            result.language = language
            break
    return result
