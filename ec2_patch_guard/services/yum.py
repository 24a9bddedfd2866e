"""Adapter around the ``yum`` command line for checks, updates and kernels.

``yum check-update`` signals its result through the exit status: ``100`` when
updates are pending, ``0`` when there are none and anything else on error.
That convention is translated into :class:`UpdateCheckStatus` here so the rest
of the workflow never sees raw exit codes.
"""
from __future__ import annotations

import os
import platform
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from ..config import (
    DEFAULT_CHECK_EXCLUDE,
    DEFAULT_EXCLUSION_CONFIG_PATH,
    DEFAULT_KERNEL_PACKAGE,
    DEFAULT_PACKAGE_MANAGER,
    DEFAULT_REBOOT_DELAY_MINUTES,
    DEFAULT_REBOOT_MESSAGE,
    DEFAULT_UPDATE_EXCLUDE,
)
from ..errors import ExclusionConfigError, KernelUpdateError, UpdateApplyError, UpdateCheckError
from ..models import KernelUpdate, UpdateCheck, UpdateCheckStatus
from ..utils import run_command

CHECK_UPDATE_AVAILABLE = 100
CHECK_UPDATE_NONE = 0

AVAILABLE_PACKAGES_MARKER = "Available Packages"


@contextmanager
def exclusion_config(
    patterns: Iterable[str], path: str = DEFAULT_EXCLUSION_CONFIG_PATH
) -> Iterator[str]:
    """Write a yum config excluding *patterns* and remove it on exit.

    The file is deleted whether the body returns normally or raises. A symlink
    at *path* is refused rather than followed.
    """

    created = False
    try:
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_NOFOLLOW, 0o600)
            created = True
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(f"[main]\nexclude={' '.join(patterns)}\n")
        except OSError as exc:
            raise ExclusionConfigError(
                f"Could not write exclusion config {path}: {exc}"
            ) from exc
        yield path
    finally:
        if created and os.path.lexists(path):
            os.remove(path)


def classify_check_update(returncode: Optional[int]) -> UpdateCheckStatus:
    if returncode == CHECK_UPDATE_AVAILABLE:
        return UpdateCheckStatus.AVAILABLE
    if returncode == CHECK_UPDATE_NONE:
        return UpdateCheckStatus.NONE
    return UpdateCheckStatus.ERROR


def check_updates(
    exclude: Iterable[str] = DEFAULT_CHECK_EXCLUDE,
    *,
    config_path: str = DEFAULT_EXCLUSION_CONFIG_PATH,
    package_manager: str = DEFAULT_PACKAGE_MANAGER,
) -> UpdateCheck:
    """Run ``check-update`` with *exclude* applied and classify the result."""

    with exclusion_config(exclude, config_path) as path:
        completed = run_command([package_manager, "--config", path, "check-update", "-q"])
    output = (completed.stdout or "") + (completed.stderr or "")
    return UpdateCheck(
        status=classify_check_update(completed.returncode),
        returncode=completed.returncode,
        output=output.strip(),
    )


def updates_available(
    exclude: Iterable[str] = DEFAULT_CHECK_EXCLUDE,
    *,
    config_path: str = DEFAULT_EXCLUSION_CONFIG_PATH,
    package_manager: str = DEFAULT_PACKAGE_MANAGER,
) -> bool:
    """Return whether updates are pending, raising :class:`UpdateCheckError` on failure."""

    result = check_updates(exclude, config_path=config_path, package_manager=package_manager)
    if result.status is UpdateCheckStatus.AVAILABLE:
        print("Updates are available")
        if result.output:
            print(result.output)
        return True
    if result.status is UpdateCheckStatus.NONE:
        print("No updates are available")
        return False

    message = f"Error checking for updates (exit code {result.returncode})"
    if result.output:
        message = f"{message}: {result.output}"
    raise UpdateCheckError(message)


def update_packages(
    exclude: Iterable[str] = DEFAULT_UPDATE_EXCLUDE,
    *,
    config_path: str = DEFAULT_EXCLUSION_CONFIG_PATH,
    package_manager: str = DEFAULT_PACKAGE_MANAGER,
) -> None:
    """Show the pending change set, then apply it non-interactively."""

    patterns: List[str] = list(exclude)
    print(f"Starting system update (excluding {', '.join(patterns)})...")
    with exclusion_config(patterns, config_path) as path:
        print("The following packages will be updated:")
        # --assumeno exits non-zero whenever there is something to do.
        run_command([package_manager, "--config", path, "update", "--assumeno"], capture=False)

        print("\nPerforming update...")
        completed = run_command([package_manager, "--config", path, "update", "-y"], capture=False)

    if completed.returncode != 0:
        raise UpdateApplyError(
            f"Error occurred during system update (exit code {completed.returncode})"
        )
    print("System update completed successfully")


def installed_kernel_version(
    package: str = DEFAULT_KERNEL_PACKAGE,
) -> Optional[str]:
    """Return the most recently installed version of *package* according to rpm."""

    completed = run_command(["rpm", "-q", "--last", package])
    if completed.returncode != 0:
        return None
    for line in (completed.stdout or "").splitlines():
        fields = line.split()
        if fields:
            nevra = fields[0]
            prefix = f"{package}-"
            return nevra[len(prefix):] if nevra.startswith(prefix) else nevra
    return None


def schedule_reboot(
    delay_minutes: int = DEFAULT_REBOOT_DELAY_MINUTES,
    message: str = DEFAULT_REBOOT_MESSAGE,
) -> None:
    """Ask ``shutdown`` to reboot after *delay_minutes* without waiting for it."""

    completed = run_command(["shutdown", "-r", f"+{delay_minutes}", message])
    if completed.returncode != 0:
        raise KernelUpdateError(
            f"Failed to schedule reboot: {(completed.stderr or '').strip() or completed.returncode}"
        )


def update_kernel(
    package: str = DEFAULT_KERNEL_PACKAGE,
    *,
    package_manager: str = DEFAULT_PACKAGE_MANAGER,
    reboot: bool = True,
    reboot_delay_minutes: int = DEFAULT_REBOOT_DELAY_MINUTES,
    reboot_message: str = DEFAULT_REBOOT_MESSAGE,
) -> KernelUpdate:
    """Install a pending kernel update and schedule the reboot that activates it."""

    result = KernelUpdate(current_version=platform.release())
    print(f"Current kernel version: {result.current_version}")

    listing = run_command([package_manager, "list", package])
    if AVAILABLE_PACKAGES_MARKER not in (listing.stdout or ""):
        print("No kernel update found")
        return result

    result.available = True
    print("Kernel update available")
    completed = run_command([package_manager, "update", package, "-y"], capture=False)
    if completed.returncode != 0:
        raise KernelUpdateError(f"Kernel update failed (exit code {completed.returncode})")

    result.installed_version = installed_kernel_version(package)
    print(f"Kernel updated to: {result.installed_version or 'unknown'}")

    if not reboot:
        print("Reboot skipped; reboot the instance to run the new kernel.")
        return result

    print(f"Rebooting system in {reboot_delay_minutes} minute(s) to apply new kernel...")
    schedule_reboot(reboot_delay_minutes, reboot_message)
    result.reboot_scheduled = True
    return result


__all__ = [
    "check_updates",
    "classify_check_update",
    "exclusion_config",
    "installed_kernel_version",
    "schedule_reboot",
    "update_kernel",
    "update_packages",
    "updates_available",
]
