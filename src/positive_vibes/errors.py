"""Exception hierarchy for resource resolution and installation."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .engine.installer import BatchResult


class VibesError(Exception):
    """Base exception for positive-vibes errors."""
    pass


class ResourceNotFoundError(VibesError):
    """A named resource (or one of its files) is absent from a registry."""

    def __init__(self, name: str, registry: str | None = None, kind: str = "resource"):
        self.name = name
        self.registry = registry
        self.kind = kind
        where = f" in registry '{registry}'" if registry else ""
        super().__init__(f"{kind} '{name}' not found{where}")


class SkillNotFoundError(ResourceNotFoundError):
    """No ``SKILL.md`` exists for the requested skill name."""

    def __init__(self, name: str, registry: str | None = None):
        super().__init__(name, registry=registry, kind="skill")


class AlreadyInstalledError(VibesError):
    """The install destination exists and ``force`` was not requested."""

    def __init__(self, name: str, destination: Path):
        self.name = name
        self.destination = destination
        super().__init__(
            f"'{name}' already exists at {destination} (use --force to overwrite)"
        )


class AlreadyInManifestError(VibesError):
    """The manifest already lists this resource."""

    def __init__(self, name: str, kind: str = "skill"):
        self.name = name
        self.kind = kind
        super().__init__(f"{kind} '{name}' is already in the manifest")


class NotInManifestError(VibesError):
    """The resource to remove is not listed in the manifest."""

    def __init__(self, name: str, kind: str = "skill"):
        self.name = name
        self.kind = kind
        super().__init__(f"{kind} '{name}' is not in the manifest")


class RegistryError(VibesError):
    """A registry could not be prepared or refreshed."""

    def __init__(self, message: str, registry: str | None = None):
        self.registry = registry
        super().__init__(message)


class RefUnknownError(RegistryError):
    """The requested git ref does not exist in the registry repository."""

    def __init__(self, ref: str, registry: str):
        self.ref = ref
        super().__init__(f"unknown ref '{ref}' for registry '{registry}'", registry=registry)


class CloneFailedError(RegistryError):
    """Cloning failed and there is no usable cache to fall back on."""

    def __init__(self, registry: str, url: str, ref: str = "", detail: str = ""):
        self.url = url
        self.ref = ref
        self.detail = detail
        at_ref = f" at ref '{ref}'" if ref else ""
        message = f"failed to clone registry '{registry}' from {url}{at_ref}"
        if detail:
            message += f": {detail}"
        super().__init__(message, registry=registry)


class ResourceIOError(VibesError):
    """A filesystem read or write failed while materializing a resource."""

    def __init__(self, path: Path | str, detail: str):
        self.path = Path(path)
        super().__init__(f"{path}: {detail}")


class InvalidNameError(VibesError):
    """A resource name cannot be used as a single path component."""

    def __init__(self, name: str, kind: str = "resource"):
        self.name = name
        self.kind = kind
        super().__init__(f"invalid {kind} name '{name}'")


class SkillParseError(VibesError):
    """A skill document is empty or its front-matter is malformed."""


class ManifestError(VibesError):
    """A manifest file is malformed or fails validation."""


class ManifestNotFoundError(ManifestError):
    """No manifest exists at or above the project directory."""

    def __init__(self, start: Path, filenames: Sequence[str]):
        self.start = start
        super().__init__(
            f"no manifest found in {start} or its parents (looked for {', '.join(filenames)})"
        )


class UnknownTargetError(VibesError, ValueError):
    """A target identifier is not one of the supported tools."""

    def __init__(self, name: str, valid: Sequence[str]):
        self.name = name
        super().__init__(f"unknown target '{name}' (valid targets: {', '.join(valid)})")


class BatchError(VibesError):
    """One or more names in a batch install/remove failed.

    The message joins each per-name failure with ``"; "``; the full outcome
    (including names that succeeded or were skipped) is kept on ``result``.
    """

    def __init__(self, result: "BatchResult"):
        self.result = result
        super().__init__("; ".join(str(err) for _, err in result.failed))
