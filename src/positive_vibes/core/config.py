"""Static configuration shared across the CLI and the core."""

from __future__ import annotations

APP_NAME = "positive-vibes"

# Preferred name first; ``vibes.yml`` is accepted for older projects.
MANIFEST_FILENAMES: tuple[str, ...] = ("vibes.yaml", "vibes.yml")

SKILL_FILENAME = "SKILL.md"

TARGET_CHOICES: dict[str, str] = {
    "vscode-copilot": "VS Code Copilot",
    "cursor": "Cursor",
    "opencode": "opencode",
}

RESOURCE_TYPES: tuple[str, ...] = ("skills", "agents", "instructions")

DEFAULT_SKILLS_PATH = "."
DEFAULT_INSTRUCTIONS_PATH = "instructions"
DEFAULT_AGENTS_PATH = "agents"

EMBEDDED_REGISTRY_NAME = "embedded"

LATEST_REF = "latest"

DEFAULT_RECOMMENDED_SKILLS: tuple[str, ...] = ("conventional-commits", "code-review")

# Project-local skills checked by ``install`` before any registry.
LOCAL_SKILLS_DIR = "skills"
LOCAL_SOURCE = "local"
