"""Registry backed by a remote git repository cloned into the local cache."""

from __future__ import annotations

import logging
from pathlib import Path

from positive_vibes.core.config import (
    DEFAULT_AGENTS_PATH,
    DEFAULT_INSTRUCTIONS_PATH,
    DEFAULT_SKILLS_PATH,
)

from .base import Registry
from .cache import GitCache

logger = logging.getLogger(__name__)


class GitRegistry(Registry):
    """Skills served from a clone of ``url`` kept at ``cache_path``.

    The clone is created on first use. ``ref`` selects a branch, tag, full
    commit SHA, or ``latest`` (the remote's default branch).
    """

    kind = "git"

    def __init__(
        self,
        name: str,
        url: str,
        cache_path: Path,
        ref: str = "",
        skills_path: str = DEFAULT_SKILLS_PATH,
        instructions_path: str = DEFAULT_INSTRUCTIONS_PATH,
        agents_path: str = DEFAULT_AGENTS_PATH,
    ) -> None:
        super().__init__(
            name,
            skills_path=skills_path,
            instructions_path=instructions_path,
            agents_path=agents_path,
        )
        self._url = url
        self.ref = ref
        self.cache = GitCache(name, url, Path(cache_path), ref)

    @property
    def url(self) -> str:
        return self._url

    @property
    def cache_path(self) -> Path:
        return self.cache.path

    def root(self) -> Path:
        return self.cache.ensure()

    def refresh(self) -> bool:
        """Fetch + fast-forward for branch/latest refs; no-op for tags and SHAs."""
        moved = self.cache.refresh()
        logger.debug("Refreshed %s (updated=%s)", self.name, moved)
        return moved
