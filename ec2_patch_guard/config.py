"""Runtime settings for the pre-update snapshot and patch workflow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

# Packages skipped while deciding whether an update run is needed at all.
DEFAULT_CHECK_EXCLUDE: Tuple[str, ...] = ("filebeat*",)

# Packages skipped by the bulk update. The kernel is handled by its own step.
DEFAULT_UPDATE_EXCLUDE: Tuple[str, ...] = ("filebeat*", "kernel*")

DEFAULT_EXCLUSION_CONFIG_PATH = "/tmp/yum-exclude.conf"
DEFAULT_PACKAGE_MANAGER = "yum"
DEFAULT_KERNEL_PACKAGE = "kernel"
DEFAULT_REBOOT_DELAY_MINUTES = 1
DEFAULT_REBOOT_MESSAGE = "System rebooting for kernel update"

METADATA_ENDPOINT = "http://169.254.169.254/latest"
DEFAULT_METADATA_TIMEOUT = 2.0
DEFAULT_TOKEN_TTL_SECONDS = 21600

SNAPSHOT_PURPOSE = "PreUpdate"


@dataclass(frozen=True)
class PatchSettings:
    """Options that shape a single patch run."""

    profile: Optional[str] = None
    region: Optional[str] = None
    check_exclude: Tuple[str, ...] = DEFAULT_CHECK_EXCLUDE
    update_exclude: Tuple[str, ...] = DEFAULT_UPDATE_EXCLUDE
    exclusion_config_path: str = DEFAULT_EXCLUSION_CONFIG_PATH
    package_manager: str = DEFAULT_PACKAGE_MANAGER
    kernel_package: str = DEFAULT_KERNEL_PACKAGE
    reboot: bool = True
    reboot_delay_minutes: int = DEFAULT_REBOOT_DELAY_MINUTES
    reboot_message: str = DEFAULT_REBOOT_MESSAGE
    metadata_timeout: float = DEFAULT_METADATA_TIMEOUT
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    check_only: bool = False
    skip_kernel: bool = False
    json_path: Optional[str] = None

    def required_executables(self) -> Tuple[str, ...]:
        """Return the commands the workflow shells out to."""

        commands = [self.package_manager]
        if not self.check_only and not self.skip_kernel:
            commands.append("rpm")
            if self.reboot:
                commands.append("shutdown")
        return tuple(commands)


__all__ = [
    "DEFAULT_CHECK_EXCLUDE",
    "DEFAULT_EXCLUSION_CONFIG_PATH",
    "DEFAULT_KERNEL_PACKAGE",
    "DEFAULT_METADATA_TIMEOUT",
    "DEFAULT_PACKAGE_MANAGER",
    "DEFAULT_REBOOT_DELAY_MINUTES",
    "DEFAULT_REBOOT_MESSAGE",
    "DEFAULT_TOKEN_TTL_SECONDS",
    "DEFAULT_UPDATE_EXCLUDE",
    "METADATA_ENDPOINT",
    "PatchSettings",
    "SNAPSHOT_PURPOSE",
]
