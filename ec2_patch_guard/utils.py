"""Shared helpers for AWS calls, snapshot naming and external commands."""
from __future__ import annotations

import re
import subprocess
from datetime import datetime
from typing import Iterable, Iterator, Mapping, Optional, Sequence

import boto3
from botocore.exceptions import OperationNotPageableError

from .errors import DependencyMissingError

DATE_FORMAT = "%Y-%m-%d-%H-%M-%S"

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9-]")


def safe_paginate(client: boto3.client, method_name: str, result_key: str, **kwargs) -> Iterator[dict]:
    """Iterate through paginated boto3 results while handling pagination gaps."""

    try:
        paginator = client.get_paginator(method_name)
    except OperationNotPageableError:
        response = getattr(client, method_name)(**kwargs)
        for item in response.get(result_key, []):
            yield item
        return

    for page in paginator.paginate(**kwargs):
        for item in page.get(result_key, []):
            yield item


def tag_value(tags: Optional[Iterable[Mapping[str, str]]], key: str) -> Optional[str]:
    """Return the value of the first tag named *key*, treating ``"None"`` as absent."""

    for tag in tags or []:
        if tag.get("Key") == key:
            value = tag.get("Value")
            if not value or value == "None":
                return None
            return value
    return None


def sanitize_instance_name(raw_name: Optional[str], instance_id: str) -> str:
    """Turn a Name tag into a token safe for snapshot names and tags.

    Spaces become hyphens and anything outside ``[A-Za-z0-9-]`` is dropped.
    A missing tag, the literal ``"None"`` the EC2 CLI prints for absent values,
    or a value with no usable characters all fall back to *instance_id*.
    """

    if not raw_name or raw_name == "None":
        return instance_id
    cleaned = _UNSAFE_NAME_CHARS.sub("", raw_name.replace(" ", "-"))
    return cleaned or instance_id


def snapshot_name(instance_name: str, volume_id: str, volume_name: Optional[str], date_stamp: str) -> str:
    """Name tag for a volume's snapshot."""

    if volume_name:
        return f"{instance_name}-{volume_name}-{date_stamp}"
    suffix = volume_id.rsplit("-", 1)[-1]
    return f"{instance_name}-vol-{suffix}-{date_stamp}"


def snapshot_description(instance_name: str, volume_name: Optional[str], date_stamp: str) -> str:
    """Human-readable description for a volume's snapshot."""

    description = f"Backup-{instance_name}-{date_stamp}"
    if volume_name:
        description = f"{description}-{volume_name}"
    return description


def date_stamp(moment: Optional[datetime] = None) -> str:
    """Return the run timestamp used in snapshot names, in local time."""

    return (moment or datetime.now()).strftime(DATE_FORMAT)


def run_command(
    command: Sequence[str], *, capture: bool = True
) -> subprocess.CompletedProcess:
    """Run *command* without raising on a non-zero exit status.

    With ``capture`` the output is returned as text; otherwise it streams to the
    console so the operator can follow long package operations.
    """

    try:
        return subprocess.run(
            list(command),
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise DependencyMissingError(f"{command[0]} is not installed") from exc


__all__ = [
    "DATE_FORMAT",
    "date_stamp",
    "run_command",
    "safe_paginate",
    "sanitize_instance_name",
    "snapshot_description",
    "snapshot_name",
    "tag_value",
]
