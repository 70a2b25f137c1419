"""OpenCode target (``.opencode/``)."""

from __future__ import annotations

from .base import Target


class OpenCodeTarget(Target):
    name = "opencode"
    root = ".opencode"
    display_name = "opencode"
