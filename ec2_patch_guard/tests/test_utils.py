"""Tests for naming and tag helpers."""

from __future__ import annotations

import re
import sys
from datetime import datetime
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


import pytest

from ec2_patch_guard.errors import DependencyMissingError
from ec2_patch_guard.utils import (
    date_stamp,
    run_command,
    sanitize_instance_name,
    snapshot_description,
    snapshot_name,
    tag_value,
)

SAFE_NAME = re.compile(r"^[A-Za-z0-9-]+$")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("web server 1", "web-server-1"),
        ("api_prod (eu)", "apiprod-eu"),
        ("db-01", "db-01"),
        ("café #2", "caf-2"),
    ],
)
def test_sanitize_instance_name_keeps_only_safe_characters(raw: str, expected: str) -> None:
    name = sanitize_instance_name(raw, "i-0abc")

    assert name == expected
    assert SAFE_NAME.match(name)


@pytest.mark.parametrize("raw", [None, "", "None"])
def test_sanitize_instance_name_falls_back_to_instance_id(raw) -> None:
    assert sanitize_instance_name(raw, "i-0123456789abcdef0") == "i-0123456789abcdef0"


def test_sanitize_instance_name_never_returns_empty_for_unusable_tag() -> None:
    """A tag with no safe characters still yields a usable name."""

    assert sanitize_instance_name("***", "i-0abc") == "i-0abc"


def test_snapshot_name_uses_volume_name_tag() -> None:
    assert snapshot_name("web1", "vol-0123456789abcdef0", "data", "2024-01-01-00-00-00") == (
        "web1-data-2024-01-01-00-00-00"
    )


def test_snapshot_name_without_tag_uses_volume_id_suffix() -> None:
    assert snapshot_name("web1", "vol-0123456789abcdef0", None, "2024-01-01-00-00-00") == (
        "web1-vol-0123456789abcdef0-2024-01-01-00-00-00"
    )


def test_snapshot_description_appends_volume_name() -> None:
    assert snapshot_description("web1", "data", "2024-01-01-00-00-00") == (
        "Backup-web1-2024-01-01-00-00-00-data"
    )
    assert snapshot_description("web1", None, "2024-01-01-00-00-00") == (
        "Backup-web1-2024-01-01-00-00-00"
    )


def test_tag_value_ignores_placeholder_and_other_keys() -> None:
    tags = [{"Key": "Env", "Value": "prod"}, {"Key": "Name", "Value": "None"}]

    assert tag_value(tags, "Name") is None
    assert tag_value(tags, "Env") == "prod"
    assert tag_value(None, "Name") is None


def test_date_stamp_format() -> None:
    assert date_stamp(datetime(2024, 1, 1, 0, 0, 0)) == "2024-01-01-00-00-00"


def test_run_command_reports_missing_executable() -> None:
    with pytest.raises(DependencyMissingError, match="not installed"):
        run_command(["definitely-not-a-real-command-ec2-patch-guard"])
