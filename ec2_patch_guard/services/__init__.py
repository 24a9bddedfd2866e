"""Adapters for the external systems the patch workflow drives."""
from __future__ import annotations

from .ec2 import create_snapshots, list_attached_volumes, resolve_instance_name, validate_instance
from .yum import (
    check_updates,
    exclusion_config,
    schedule_reboot,
    update_kernel,
    update_packages,
    updates_available,
)

__all__ = [
    "check_updates",
    "create_snapshots",
    "exclusion_config",
    "list_attached_volumes",
    "resolve_instance_name",
    "schedule_reboot",
    "update_kernel",
    "update_packages",
    "updates_available",
    "validate_instance",
]
