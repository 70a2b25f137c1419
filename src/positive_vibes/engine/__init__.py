"""Install, remove and apply orchestration."""

from .applier import Applier, ApplyOp, ApplyResult, OpStatus
from .installer import BatchResult, InstallOutcome, Installer, dedup
from .scanner import ScanResult, scan_project

__all__ = [
    "Applier",
    "ApplyOp",
    "ApplyResult",
    "BatchResult",
    "InstallOutcome",
    "Installer",
    "OpStatus",
    "ScanResult",
    "dedup",
    "scan_project",
]
