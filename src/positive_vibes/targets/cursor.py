"""Cursor target (``.cursor/``)."""

from __future__ import annotations

from .base import Target


class CursorTarget(Target):
    name = "cursor"
    root = ".cursor"
    display_name = "Cursor"
