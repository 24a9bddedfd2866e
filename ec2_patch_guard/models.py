"""Data models shared by the patch workflow stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class InstanceIdentity:
    """Instance id and region as reported by the metadata service."""

    instance_id: str
    region: str


@dataclass(frozen=True)
class RunContext:
    """Values every stage needs, resolved once at the start of a run."""

    identity: InstanceIdentity
    instance_name: str
    date_stamp: str

    @property
    def instance_id(self) -> str:
        return self.identity.instance_id

    @property
    def region(self) -> str:
        return self.identity.region


class UpdateCheckStatus(str, Enum):
    """Outcome of a package update check."""

    AVAILABLE = "AVAILABLE"
    NONE = "NONE"
    ERROR = "ERROR"


@dataclass
class UpdateCheck:
    """Classified result of ``yum check-update``."""

    status: UpdateCheckStatus
    returncode: Optional[int]
    output: str = ""


@dataclass(frozen=True)
class AttachedVolume:
    """An EBS volume attached to the instance and its optional Name tag."""

    volume_id: str
    name: Optional[str] = None


@dataclass
class SnapshotResult:
    """Outcome of snapshotting a single volume."""

    volume_id: str
    snapshot_name: str
    description: str
    snapshot_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.snapshot_id is not None and self.error is None


@dataclass
class RunTally:
    """Success and failure counts across the snapshot loop."""

    success_count: int = 0
    failure_count: int = 0

    def record(self, result: SnapshotResult) -> None:
        if result.succeeded:
            self.success_count += 1
        else:
            self.failure_count += 1


@dataclass
class SnapshotBatch:
    """All snapshot results for one run with their tally."""

    results: List[SnapshotResult] = field(default_factory=list)
    tally: RunTally = field(default_factory=RunTally)

    @property
    def failed(self) -> bool:
        return self.tally.failure_count > 0

    def add(self, result: SnapshotResult) -> None:
        self.results.append(result)
        self.tally.record(result)


@dataclass
class KernelUpdate:
    """What the kernel step found and did."""

    current_version: str
    available: bool = False
    installed_version: Optional[str] = None
    reboot_scheduled: bool = False


@dataclass
class RunReport:
    """Summary of a full run, exported as JSON on request."""

    instance_id: str
    region: str
    instance_name: str
    date_stamp: str
    updates_available: Optional[bool] = None
    snapshots: List[SnapshotResult] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    packages_updated: bool = False
    kernel: Optional[KernelUpdate] = None
    exit_code: int = 0


__all__ = [
    "AttachedVolume",
    "InstanceIdentity",
    "KernelUpdate",
    "RunContext",
    "RunReport",
    "RunTally",
    "SnapshotBatch",
    "SnapshotResult",
    "UpdateCheck",
    "UpdateCheckStatus",
]
