"""Core orchestration for the pre-update snapshot and patch workflow."""
from __future__ import annotations

import sys
from datetime import datetime
from typing import Callable, Optional

import boto3

from .config import PatchSettings
from .metadata import resolve_identity
from .models import InstanceIdentity, RunContext, RunReport
from .preflight import require_executables, require_root
from .services import (
    create_snapshots,
    resolve_instance_name,
    update_kernel,
    update_packages,
    updates_available,
    validate_instance,
)
from .utils import date_stamp

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def prepare_context(
    ec2: boto3.client, identity: InstanceIdentity, *, now: Optional[datetime] = None
) -> RunContext:
    """Confirm the instance exists and resolve the name used for its snapshots."""

    validate_instance(ec2, identity.instance_id, identity.region)
    instance_name = resolve_instance_name(ec2, identity.instance_id)
    print(f"Working with instance: {instance_name} ({identity.instance_id})")
    return RunContext(identity=identity, instance_name=instance_name, date_stamp=date_stamp(now))


def run_patch_workflow(
    ec2: boto3.client, context: RunContext, settings: PatchSettings
) -> RunReport:
    """Snapshot and patch the instance described by *context*.

    Returns a :class:`RunReport` whose ``exit_code`` is non-zero when any
    snapshot failed, in which case no package is touched. Fatal stage errors
    propagate as :class:`~ec2_patch_guard.errors.PatchGuardError` subclasses.
    """

    report = RunReport(
        instance_id=context.instance_id,
        region=context.region,
        instance_name=context.instance_name,
        date_stamp=context.date_stamp,
    )

    print(f"Checking for available updates (excluding {', '.join(settings.check_exclude)})...")
    report.updates_available = updates_available(
        settings.check_exclude,
        config_path=settings.exclusion_config_path,
        package_manager=settings.package_manager,
    )
    if not report.updates_available:
        print("No updates available. Skipping snapshot creation.")
        return report
    if settings.check_only:
        print("Check only requested. Skipping snapshots and updates.")
        return report

    print("Updates found. Creating snapshots before proceeding with patch updates...")
    batch = create_snapshots(ec2, context)
    report.snapshots = batch.results
    report.success_count = batch.tally.success_count
    report.failure_count = batch.tally.failure_count
    if batch.failed:
        print(
            "Error: one or more snapshots failed; packages were not updated.",
            file=sys.stderr,
        )
        report.exit_code = EXIT_FAILURE
        return report
    print("Snapshots created successfully. Proceeding with system updates.")

    update_packages(
        settings.update_exclude,
        config_path=settings.exclusion_config_path,
        package_manager=settings.package_manager,
    )
    report.packages_updated = True

    if settings.skip_kernel:
        print("Kernel update skipped.")
        return report

    report.kernel = update_kernel(
        settings.kernel_package,
        package_manager=settings.package_manager,
        reboot=settings.reboot,
        reboot_delay_minutes=settings.reboot_delay_minutes,
        reboot_message=settings.reboot_message,
    )
    return report


def run(
    settings: PatchSettings,
    *,
    session_factory: Callable[..., boto3.session.Session] = boto3.Session,
) -> RunReport:
    """Run every stage, from the preflight checks to the kernel update."""

    require_root()
    require_executables(settings.required_executables())

    identity = resolve_identity(
        timeout=settings.metadata_timeout,
        token_ttl=settings.token_ttl_seconds,
        region=settings.region,
    )
    session = session_factory(profile_name=settings.profile, region_name=identity.region)
    ec2 = session.client("ec2")

    context = prepare_context(ec2, identity)
    return run_patch_workflow(ec2, context, settings)


__all__ = [
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "prepare_context",
    "run",
    "run_patch_workflow",
]
