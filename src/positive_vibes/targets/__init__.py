"""Per-tool install targets.

Supported targets:
    - vscode-copilot: .github/{skills,instructions,agents}
    - cursor: .cursor/{skills,instructions,agents}
    - opencode: .opencode/{skills,instructions,agents}
"""

from __future__ import annotations

from typing import Iterable

from positive_vibes.errors import UnknownTargetError

from .base import InstallOptions, Target
from .copilot import CopilotTarget
from .cursor import CursorTarget
from .opencode import OpenCodeTarget

# Registry mapping target IDs to target classes, in canonical order.
TARGET_REGISTRY: dict[str, type[Target]] = {
    "vscode-copilot": CopilotTarget,
    "cursor": CursorTarget,
    "opencode": OpenCodeTarget,
}


def get_target(name: str) -> Target:
    """Return the target instance for *name*.

    Raises:
        UnknownTargetError: If *name* is not a supported target.
    """
    try:
        return TARGET_REGISTRY[name]()
    except KeyError:
        raise UnknownTargetError(name, list(TARGET_REGISTRY)) from None


def resolve_targets(names: Iterable[str]) -> list[Target]:
    """Map target names to instances, preserving order and dropping repeats."""
    seen: set[str] = set()
    targets: list[Target] = []
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        targets.append(get_target(name))
    return targets


def all_targets() -> list[Target]:
    """Return one instance of every known target."""
    return [cls() for cls in TARGET_REGISTRY.values()]


__all__ = [
    "TARGET_REGISTRY",
    "CopilotTarget",
    "CursorTarget",
    "InstallOptions",
    "OpenCodeTarget",
    "Target",
    "all_targets",
    "get_target",
    "resolve_targets",
]
