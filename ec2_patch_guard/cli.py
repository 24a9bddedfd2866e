"""Command line interface for the pre-update snapshot and patch tool."""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from typing import List, Optional

from .config import (
    DEFAULT_CHECK_EXCLUDE,
    DEFAULT_EXCLUSION_CONFIG_PATH,
    DEFAULT_KERNEL_PACKAGE,
    DEFAULT_METADATA_TIMEOUT,
    DEFAULT_PACKAGE_MANAGER,
    DEFAULT_REBOOT_DELAY_MINUTES,
    DEFAULT_UPDATE_EXCLUDE,
    PatchSettings,
)
from .core import EXIT_FAILURE, run
from .errors import PatchGuardError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Snapshot every attached EBS volume, then patch this EC2 instance."
    )
    parser.add_argument("--profile", help="AWS CLI profile to use", default=None)
    parser.add_argument(
        "--region",
        help="AWS region of the instance (defaults to the instance metadata region)",
        default=None,
    )
    parser.add_argument(
        "--check-exclude",
        nargs="*",
        default=list(DEFAULT_CHECK_EXCLUDE),
        help="Package globs ignored when checking for updates",
    )
    parser.add_argument(
        "--update-exclude",
        nargs="*",
        default=list(DEFAULT_UPDATE_EXCLUDE),
        help="Package globs excluded from the system update",
    )
    parser.add_argument(
        "--exclusion-config",
        dest="exclusion_config_path",
        default=DEFAULT_EXCLUSION_CONFIG_PATH,
        help="Temporary yum config path used to pass exclusions",
    )
    parser.add_argument(
        "--package-manager",
        default=DEFAULT_PACKAGE_MANAGER,
        help="yum-compatible package manager executable",
    )
    parser.add_argument(
        "--kernel-package",
        default=DEFAULT_KERNEL_PACKAGE,
        help="Kernel package updated in the separate kernel step",
    )
    parser.add_argument(
        "--no-reboot",
        dest="reboot",
        action="store_false",
        help="Do not schedule a reboot after a kernel update",
    )
    parser.add_argument(
        "--reboot-delay",
        dest="reboot_delay_minutes",
        type=int,
        default=DEFAULT_REBOOT_DELAY_MINUTES,
        help="Minutes before the scheduled reboot",
    )
    parser.add_argument(
        "--skip-kernel",
        action="store_true",
        help="Stop after the system update without touching the kernel",
    )
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Only report whether updates are pending",
    )
    parser.add_argument(
        "--metadata-timeout",
        type=float,
        default=DEFAULT_METADATA_TIMEOUT,
        help="Seconds to wait for each instance metadata request",
    )
    parser.add_argument("--json", dest="json_path", help="Optional path to export the run report as JSON")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> PatchSettings:
    """Build :class:`PatchSettings` from parsed arguments."""

    if args.reboot_delay_minutes < 0:
        raise ValueError("--reboot-delay must not be negative")
    return PatchSettings(
        profile=args.profile,
        region=args.region,
        check_exclude=tuple(args.check_exclude),
        update_exclude=tuple(args.update_exclude),
        exclusion_config_path=args.exclusion_config_path,
        package_manager=args.package_manager,
        kernel_package=args.kernel_package,
        reboot=args.reboot,
        reboot_delay_minutes=args.reboot_delay_minutes,
        metadata_timeout=args.metadata_timeout,
        check_only=args.check_only,
        skip_kernel=args.skip_kernel,
        json_path=args.json_path,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m ec2_patch_guard``."""

    args = parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        report = run(settings)
    except PatchGuardError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if settings.json_path:
        try:
            with open(settings.json_path, "w", encoding="utf-8") as fh:
                json.dump(asdict(report), fh, indent=2, default=str)
        except OSError as exc:
            print(f"Failed to export run report: {exc}", file=sys.stderr)
        else:
            print(f"Run report exported to {settings.json_path}")

    return report.exit_code


__all__ = ["main", "parse_args", "settings_from_args"]
