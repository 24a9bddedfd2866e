"""Exception types raised by the patch workflow stages."""
from __future__ import annotations


class PatchGuardError(RuntimeError):
    """Base class for failures that abort the patch run."""


class PrivilegeError(PatchGuardError):
    """The tool is not running with root privileges."""


class DependencyMissingError(PatchGuardError):
    """A required executable is not installed."""


class MetadataUnavailableError(PatchGuardError):
    """The instance metadata service did not return a required value."""


class InstanceNotFoundError(PatchGuardError):
    """The EC2 API could not confirm the instance exists."""


class ExclusionConfigError(PatchGuardError):
    """The temporary package-manager exclusion config could not be written."""


class UpdateCheckError(PatchGuardError):
    """The package manager failed while checking for updates."""


class NoVolumesFoundError(PatchGuardError):
    """No EBS volumes are attached to the instance."""


class UpdateApplyError(PatchGuardError):
    """The package update finished with a non-zero exit code."""


class KernelUpdateError(PatchGuardError):
    """Installing the kernel update or scheduling the reboot failed."""


__all__ = [
    "DependencyMissingError",
    "ExclusionConfigError",
    "InstanceNotFoundError",
    "KernelUpdateError",
    "MetadataUnavailableError",
    "NoVolumesFoundError",
    "PatchGuardError",
    "PrivilegeError",
    "UpdateApplyError",
    "UpdateCheckError",
]
