"""Pre-update EBS snapshots and controlled package patching for EC2 instances."""

from __future__ import annotations

from .config import PatchSettings
from .core import prepare_context, run, run_patch_workflow
from .errors import PatchGuardError
from .models import (
    InstanceIdentity,
    KernelUpdate,
    RunContext,
    RunReport,
    RunTally,
    SnapshotBatch,
    SnapshotResult,
    UpdateCheck,
    UpdateCheckStatus,
)

__all__ = [
    "InstanceIdentity",
    "KernelUpdate",
    "PatchGuardError",
    "PatchSettings",
    "RunContext",
    "RunReport",
    "RunTally",
    "SnapshotBatch",
    "SnapshotResult",
    "UpdateCheck",
    "UpdateCheckStatus",
    "prepare_context",
    "run",
    "run_patch_workflow",
]
