"""Core configuration and path exports."""

from .config import (
    APP_NAME,
    EMBEDDED_REGISTRY_NAME,
    MANIFEST_FILENAMES,
    RESOURCE_TYPES,
    SKILL_FILENAME,
    TARGET_CHOICES,
)
from .paths import (
    get_bundle_root,
    get_cache_root,
    get_global_manifest_path,
    get_registry_cache_path,
)

__all__ = [
    "APP_NAME",
    "EMBEDDED_REGISTRY_NAME",
    "MANIFEST_FILENAMES",
    "RESOURCE_TYPES",
    "SKILL_FILENAME",
    "TARGET_CHOICES",
    "get_bundle_root",
    "get_cache_root",
    "get_global_manifest_path",
    "get_registry_cache_path",
]
