"""Loading and saving manifest files.

Saves are atomic: the YAML is written to a temp file in the same directory
and renamed over the target with ``os.replace``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.error import YAMLError

from positive_vibes.core.config import MANIFEST_FILENAMES
from positive_vibes.errors import ManifestError, ManifestNotFoundError, ResourceIOError

from .merge import merge_manifests, resolve_manifest_paths
from .models import Manifest

logger = logging.getLogger(__name__)


def _yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


def find_manifest(project_dir: Path) -> Path | None:
    """Return the nearest manifest at or above *project_dir*, if any."""
    current = Path(project_dir).resolve()
    for directory in (current, *current.parents):
        for filename in MANIFEST_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def load_manifest(path: Path) -> Manifest:
    """Parse the manifest at *path*.

    Raises:
        FileNotFoundError: If the file does not exist.
        ManifestError: If the YAML is malformed or structurally invalid.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = _yaml().load(f)
    except FileNotFoundError:
        raise
    except YAMLError as exc:
        raise ManifestError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ResourceIOError(path, str(exc)) from exc

    try:
        return Manifest.from_dict(data)
    except ManifestError as exc:
        raise ManifestError(f"{path}: {exc}") from exc


def load_manifest_or_empty(path: Path) -> Manifest:
    """Like :func:`load_manifest`, but a missing file yields an empty manifest."""
    try:
        return load_manifest(path)
    except FileNotFoundError:
        logger.debug("No manifest at %s; starting from an empty one", path)
        return Manifest()


def load_manifest_from_project(project_dir: Path) -> tuple[Manifest, Path]:
    """Find and load the project manifest, walking upward from *project_dir*.

    Raises:
        ManifestNotFoundError: If no manifest exists at or above the directory.
    """
    path = find_manifest(project_dir)
    if path is None:
        raise ManifestNotFoundError(Path(project_dir), MANIFEST_FILENAMES)
    return load_manifest(path), path


def load_global_manifest(global_path: Path) -> Manifest | None:
    """Load the user-wide manifest, or return None when it does not exist."""
    try:
        manifest = load_manifest(global_path)
    except FileNotFoundError:
        return None
    resolve_manifest_paths(manifest, Path(global_path).parent)
    return manifest


def load_merged_manifest(project_dir: Path, global_path: Path) -> Manifest:
    """Return the union of the global and project manifests.

    Project entries win name conflicts. Relative ``path`` values are made
    absolute against the directory of the manifest that declared them.

    Raises:
        ManifestNotFoundError: If neither manifest exists.
    """
    global_manifest = load_global_manifest(global_path)

    project_manifest: Manifest | None = None
    project_path = find_manifest(project_dir)
    if project_path is not None:
        project_manifest = load_manifest(project_path)
        resolve_manifest_paths(project_manifest, project_path.parent)

    if global_manifest is None and project_manifest is None:
        raise ManifestNotFoundError(Path(project_dir), MANIFEST_FILENAMES)
    if global_manifest is None:
        return project_manifest
    if project_manifest is None:
        return global_manifest
    return merge_manifests(global_manifest, project_manifest)


def _load_document(path: Path) -> CommentedMap | None:
    """Return the round-trip document currently at *path*, if it is a mapping."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = _yaml().load(f)
    except (OSError, YAMLError):
        return None
    return doc if isinstance(doc, CommentedMap) else None


def _update_sequence(old: CommentedSeq, new: list[Any]) -> list[Any]:
    if old == new:
        return old
    # An empty sequence loads as flow style "[]"; start it afresh as a block.
    if not old:
        return new
    named = all(isinstance(item, dict) and "name" in item for item in [*old, *new])
    if not named:
        return new

    wanted = {item["name"] for item in new}
    for index in range(len(old) - 1, -1, -1):
        if old[index]["name"] not in wanted:
            del old[index]
    kept = {item["name"]: item for item in old}
    for item in new:
        if item["name"] in kept:
            _update_mapping(kept[item["name"]], item)
        else:
            old.append(item)
    if [item["name"] for item in old] != [item["name"] for item in new]:
        return new
    return old


def _update_mapping(doc: CommentedMap, data: dict[str, Any]) -> None:
    """Copy *data* onto *doc* in place, keeping comments and quoting on
    values that did not change."""
    for key in [k for k in doc if k not in data]:
        del doc[key]
    for key, value in data.items():
        old = doc.get(key)
        if isinstance(old, CommentedSeq) and isinstance(value, list):
            doc[key] = _update_sequence(old, value)
        elif isinstance(old, CommentedMap) and isinstance(value, dict):
            _update_mapping(old, value)
        elif key not in doc or old != value:
            doc[key] = value


def save_manifest(manifest: Manifest, path: Path, header: str = "") -> None:
    """Atomically write *manifest* to *path* (temp file + rename).

    When *path* already holds a manifest and no *header* is given, the
    existing document is updated in place so comments and quoting on
    untouched entries survive.

    Args:
        manifest: Manifest to persist; entry order is kept as-is.
        path: Destination file.
        header: Optional ``#``-prefixed comment block written first. A
            header starts the file afresh.

    Raises:
        ResourceIOError: If the file cannot be written.
    """
    path = Path(path)
    document: Any = manifest.to_dict()
    existing = None if header else _load_document(path)
    if existing is not None:
        _update_mapping(existing, document)
        document = existing

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
    except OSError as exc:
        raise ResourceIOError(path, str(exc)) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            if header:
                f.write(header if header.endswith("\n") else header + "\n")
            _yaml().dump(document, f)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as exc:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise ResourceIOError(path, str(exc)) from exc
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Saved manifest to %s", path)
