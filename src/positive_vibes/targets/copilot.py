"""VS Code Copilot target (``.github/``)."""

from __future__ import annotations

from .base import Target


class CopilotTarget(Target):
    """GitHub Copilot in VS Code reads skills, instructions and agents from ``.github/``."""

    name = "vscode-copilot"
    root = ".github"
    display_name = "VS Code Copilot"
