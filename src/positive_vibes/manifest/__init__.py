"""The ``vibes.yaml`` manifest: models, persistence and global/project merging."""

from .merge import (
    OverrideDiagnostics,
    compute_override_diagnostics,
    merge_manifests,
    resolve_manifest_paths,
)
from .models import AgentRef, InstructionRef, Manifest, RegistrySpec, SkillRef
from .report import ConfigProblem, ValidationReport, diff_manifests, entry_sources, validate_config
from .store import (
    find_manifest,
    load_global_manifest,
    load_manifest,
    load_manifest_from_project,
    load_manifest_or_empty,
    load_merged_manifest,
    save_manifest,
)

__all__ = [
    "AgentRef",
    "ConfigProblem",
    "InstructionRef",
    "Manifest",
    "OverrideDiagnostics",
    "RegistrySpec",
    "SkillRef",
    "ValidationReport",
    "compute_override_diagnostics",
    "diff_manifests",
    "entry_sources",
    "find_manifest",
    "load_global_manifest",
    "load_manifest",
    "load_manifest_from_project",
    "load_manifest_or_empty",
    "load_merged_manifest",
    "merge_manifests",
    "resolve_manifest_paths",
    "save_manifest",
    "validate_config",
]
