"""Registry backed by the assets bundled inside the package."""

from __future__ import annotations

from pathlib import Path

from positive_vibes.core.config import EMBEDDED_REGISTRY_NAME
from positive_vibes.core.paths import get_bundle_root

from .base import Registry


class EmbeddedRegistry(Registry):
    """Read-only registry serving ``bundle/skills``, ``bundle/instructions``
    and ``bundle/agents`` from the installed package.

    ``bundle_root`` can point elsewhere (tests, vendored bundles); the layout
    underneath must match.
    """

    kind = "embedded"

    def __init__(
        self,
        name: str = EMBEDDED_REGISTRY_NAME,
        bundle_root: Path | None = None,
    ) -> None:
        super().__init__(
            name,
            skills_path="skills",
            instructions_path="instructions",
            agents_path="agents",
        )
        self._bundle_root = bundle_root

    def root(self) -> Path:
        if self._bundle_root is None:
            self._bundle_root = get_bundle_root()
        return self._bundle_root
