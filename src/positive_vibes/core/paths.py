"""Filesystem locations: registry cache, global manifest, bundled assets.

Resolution for the cache root:
1. POSITIVE_VIBES_CACHE_DIR environment variable
2. $XDG_CACHE_HOME/positive-vibes/registries
3. ~/.cache/positive-vibes/registries (platformdirs on Windows)
"""

from __future__ import annotations

import importlib.resources
import os
from pathlib import Path

from .config import APP_NAME, MANIFEST_FILENAMES


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_cache_root() -> Path:
    """Return the directory that holds one git clone per registry."""
    if env_dir := os.environ.get("POSITIVE_VIBES_CACHE_DIR"):
        return Path(env_dir)

    if xdg := os.environ.get("XDG_CACHE_HOME"):
        return Path(xdg) / APP_NAME / "registries"

    if _is_windows():
        from platformdirs import user_cache_dir

        return Path(user_cache_dir(APP_NAME)) / "registries"

    return Path.home() / ".cache" / APP_NAME / "registries"


def get_registry_cache_path(name: str, cache_root: Path | None = None) -> Path:
    """Return the clone directory for registry *name*."""
    return (cache_root or get_cache_root()) / name


def get_global_manifest_path() -> Path:
    """Return the user-wide manifest path.

    Uses $XDG_CONFIG_HOME/positive-vibes/vibes.yaml, falling back to
    ~/.config/positive-vibes/vibes.yaml (platformdirs on Windows).
    """
    if xdg := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg) / APP_NAME / MANIFEST_FILENAMES[0]

    if _is_windows():
        from platformdirs import user_config_dir

        return Path(user_config_dir(APP_NAME)) / MANIFEST_FILENAMES[0]

    return Path.home() / ".config" / APP_NAME / MANIFEST_FILENAMES[0]


def get_bundle_root() -> Path:
    """Return the directory of assets shipped inside the package.

    Raises:
        FileNotFoundError: If the bundle is missing from the installation.
    """
    try:
        pkg_root = importlib.resources.files("positive_vibes")
        bundle = Path(str(pkg_root)) / "bundle"
        if bundle.is_dir():
            return bundle
    except (TypeError, ModuleNotFoundError):
        pass

    dev_root = Path(__file__).parent.parent / "bundle"
    if dev_root.is_dir():
        return dev_root

    raise FileNotFoundError("Cannot locate bundled skills. Reinstall positive-vibes.")


def is_safe_name(name: str) -> bool:
    """Return True if *name* can be joined onto a directory as one component."""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name
