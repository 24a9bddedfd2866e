"""End-to-end tests for the patch workflow sequencing."""

from __future__ import annotations

import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from datetime import datetime
from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.stub import ANY, Stubber

from ec2_patch_guard import core
from ec2_patch_guard.config import PatchSettings
from ec2_patch_guard.errors import InstanceNotFoundError, PrivilegeError, UpdateApplyError
from ec2_patch_guard.models import (
    InstanceIdentity,
    KernelUpdate,
    RunContext,
    SnapshotBatch,
    SnapshotResult,
)

INSTANCE_ID = "i-0123456789abcdef0"
IDENTITY = InstanceIdentity(instance_id=INSTANCE_ID, region="us-east-1")


@pytest.fixture
def context() -> RunContext:
    return RunContext(identity=IDENTITY, instance_name="web1", date_stamp="2024-01-01-00-00-00")


def _successful_batch() -> SnapshotBatch:
    batch = SnapshotBatch()
    batch.add(SnapshotResult("vol-0001", "web1-vol-0001", "Backup", snapshot_id="snap-0001"))
    return batch


class TestRunPatchWorkflow:
    def test_no_updates_exits_zero_without_snapshots(self, context):
        with patch.object(core, "updates_available", return_value=False), patch.object(
            core, "create_snapshots"
        ) as snapshots, patch.object(core, "update_packages") as packages, patch.object(
            core, "update_kernel"
        ) as kernel:
            report = core.run_patch_workflow(MagicMock(), context, PatchSettings())

        assert report.exit_code == core.EXIT_SUCCESS
        assert report.updates_available is False
        snapshots.assert_not_called()
        packages.assert_not_called()
        kernel.assert_not_called()

    def test_successful_snapshots_update_packages_then_kernel(self, context):
        order = []
        with patch.object(core, "updates_available", return_value=True), patch.object(
            core, "create_snapshots", return_value=_successful_batch()
        ), patch.object(
            core, "update_packages", side_effect=lambda *a, **k: order.append("packages")
        ), patch.object(
            core,
            "update_kernel",
            side_effect=lambda *a, **k: order.append("kernel") or KernelUpdate(current_version="5.10"),
        ):
            report = core.run_patch_workflow(MagicMock(), context, PatchSettings())

        assert order == ["packages", "kernel"]
        assert report.exit_code == core.EXIT_SUCCESS
        assert report.packages_updated
        assert report.success_count == 1
        assert report.kernel.current_version == "5.10"

    def test_one_failed_snapshot_blocks_package_update(self, context):
        ec2 = boto3.client(
            "ec2",
            region_name="us-east-1",
            aws_access_key_id="testing",
            aws_secret_access_key="testing",
        )
        with Stubber(ec2) as stubber:
            stubber.add_response(
                "describe_volumes",
                {"Volumes": [{"VolumeId": "vol-0001"}, {"VolumeId": "vol-0002"}]},
            )
            stubber.add_response(
                "create_snapshot",
                {"SnapshotId": "snap-0001"},
                {"VolumeId": "vol-0001", "Description": ANY, "TagSpecifications": ANY},
            )
            stubber.add_response(
                "describe_snapshots",
                {"Snapshots": [{"SnapshotId": "snap-0001", "State": "completed"}]},
            )
            stubber.add_client_error("create_snapshot", service_error_code="InternalError")

            with patch.object(core, "updates_available", return_value=True), patch.object(
                core, "update_packages"
            ) as packages, patch.object(core, "update_kernel") as kernel:
                report = core.run_patch_workflow(ec2, context, PatchSettings())

        assert report.exit_code == core.EXIT_FAILURE
        assert (report.success_count, report.failure_count) == (1, 1)
        packages.assert_not_called()
        kernel.assert_not_called()

    def test_package_failure_skips_kernel(self, context):
        with patch.object(core, "updates_available", return_value=True), patch.object(
            core, "create_snapshots", return_value=_successful_batch()
        ), patch.object(
            core, "update_packages", side_effect=UpdateApplyError("exit code 1")
        ), patch.object(core, "update_kernel") as kernel:
            with pytest.raises(UpdateApplyError):
                core.run_patch_workflow(MagicMock(), context, PatchSettings())

        kernel.assert_not_called()

    def test_check_only_stops_after_check(self, context):
        with patch.object(core, "updates_available", return_value=True), patch.object(
            core, "create_snapshots"
        ) as snapshots:
            report = core.run_patch_workflow(MagicMock(), context, PatchSettings(check_only=True))

        assert report.updates_available is True
        snapshots.assert_not_called()

    def test_settings_flow_into_stages(self, context):
        settings = PatchSettings(
            check_exclude=("nginx*",),
            update_exclude=("nginx*", "kernel*"),
            exclusion_config_path="/tmp/custom.conf",
            skip_kernel=True,
        )
        with patch.object(core, "updates_available", return_value=True) as check, patch.object(
            core, "create_snapshots", return_value=_successful_batch()
        ), patch.object(core, "update_packages") as packages, patch.object(
            core, "update_kernel"
        ) as kernel:
            core.run_patch_workflow(MagicMock(), context, settings)

        check.assert_called_once_with(("nginx*",), config_path="/tmp/custom.conf", package_manager="yum")
        packages.assert_called_once_with(
            ("nginx*", "kernel*"), config_path="/tmp/custom.conf", package_manager="yum"
        )
        kernel.assert_not_called()


class TestPrepareContext:
    def test_validates_then_resolves_name(self):
        ec2 = MagicMock()
        with patch.object(core, "validate_instance") as validate, patch.object(
            core, "resolve_instance_name", return_value="web1"
        ):
            context = core.prepare_context(ec2, IDENTITY, now=datetime(2024, 1, 1))

        validate.assert_called_once_with(ec2, INSTANCE_ID, "us-east-1")
        assert context.instance_name == "web1"
        assert context.date_stamp == "2024-01-01-00-00-00"

    def test_unknown_instance_stops_run(self):
        with patch.object(
            core, "validate_instance", side_effect=InstanceNotFoundError("missing")
        ), patch.object(core, "resolve_instance_name") as resolve:
            with pytest.raises(InstanceNotFoundError):
                core.prepare_context(MagicMock(), IDENTITY)

        resolve.assert_not_called()


class TestRun:
    def test_preflight_failure_stops_before_metadata(self):
        with patch.object(core, "require_root", side_effect=PrivilegeError("root")), patch.object(
            core, "resolve_identity"
        ) as identity:
            with pytest.raises(PrivilegeError):
                core.run(PatchSettings())

        identity.assert_not_called()

    def test_session_uses_metadata_region(self):
        session = MagicMock()
        factory = MagicMock(return_value=session)
        with patch.object(core, "require_root"), patch.object(
            core, "require_executables"
        ), patch.object(core, "resolve_identity", return_value=IDENTITY), patch.object(
            core, "prepare_context"
        ) as prepare, patch.object(core, "run_patch_workflow") as workflow:
            core.run(PatchSettings(profile="ops"), session_factory=factory)

        factory.assert_called_once_with(profile_name="ops", region_name="us-east-1")
        session.client.assert_called_once_with("ec2")
        prepare.assert_called_once_with(session.client.return_value, IDENTITY)
        workflow.assert_called_once()
