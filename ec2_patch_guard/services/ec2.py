"""Amazon EC2 calls: instance validation, naming and pre-update snapshots."""
from __future__ import annotations

import sys
from typing import List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import SNAPSHOT_PURPOSE
from ..errors import InstanceNotFoundError, NoVolumesFoundError
from ..models import AttachedVolume, RunContext, SnapshotBatch, SnapshotResult
from ..utils import (
    safe_paginate,
    sanitize_instance_name,
    snapshot_description,
    snapshot_name,
    tag_value,
)


def validate_instance(ec2: boto3.client, instance_id: str, region: str) -> None:
    """Fail fast unless ``DescribeInstances`` confirms *instance_id* exists."""

    try:
        response = ec2.describe_instances(InstanceIds=[instance_id])
    except (ClientError, BotoCoreError) as exc:
        raise InstanceNotFoundError(
            f"Instance {instance_id} not found in region {region}: {exc}"
        ) from exc

    instances = [
        instance
        for reservation in response.get("Reservations", [])
        for instance in reservation.get("Instances", [])
    ]
    if not instances:
        raise InstanceNotFoundError(f"Instance {instance_id} not found in region {region}")


def resolve_instance_name(ec2: boto3.client, instance_id: str) -> str:
    """Return the sanitized Name tag of the instance, or its id."""

    try:
        response = ec2.describe_tags(
            Filters=[
                {"Name": "resource-id", "Values": [instance_id]},
                {"Name": "key", "Values": ["Name"]},
            ]
        )
    except (ClientError, BotoCoreError) as exc:
        print(
            f"Warning: could not read the Name tag of {instance_id}, using the instance id: {exc}",
            file=sys.stderr,
        )
        return instance_id

    raw_name = tag_value(response.get("Tags", []), "Name")
    return sanitize_instance_name(raw_name, instance_id)


def list_attached_volumes(ec2: boto3.client, instance_id: str) -> List[AttachedVolume]:
    """Return the volumes currently attached to *instance_id* with their Name tags."""

    try:
        volumes = [
            AttachedVolume(
                volume_id=volume["VolumeId"],
                name=tag_value(volume.get("Tags"), "Name"),
            )
            for volume in safe_paginate(
                ec2,
                "describe_volumes",
                "Volumes",
                Filters=[{"Name": "attachment.instance-id", "Values": [instance_id]}],
            )
        ]
    except (ClientError, BotoCoreError) as exc:
        raise NoVolumesFoundError(
            f"Failed to describe volumes for instance {instance_id}: {exc}"
        ) from exc
    return volumes


def _snapshot_tags(context: RunContext, volume_id: str, name: str) -> List[dict]:
    return [
        {"Key": "Name", "Value": name},
        {"Key": "SourceInstance", "Value": context.instance_id},
        {"Key": "SourceInstanceName", "Value": context.instance_name},
        {"Key": "SourceVolume", "Value": volume_id},
        {"Key": "Purpose", "Value": SNAPSHOT_PURPOSE},
    ]


def snapshot_volume(ec2: boto3.client, context: RunContext, volume: AttachedVolume) -> SnapshotResult:
    """Create a tagged snapshot of *volume* and wait until it completes.

    API and waiter failures are recorded on the returned result instead of
    being raised, so the caller can move on to the next volume.
    """

    name = snapshot_name(context.instance_name, volume.volume_id, volume.name, context.date_stamp)
    result = SnapshotResult(
        volume_id=volume.volume_id,
        snapshot_name=name,
        description=snapshot_description(context.instance_name, volume.name, context.date_stamp),
    )

    try:
        response = ec2.create_snapshot(
            VolumeId=volume.volume_id,
            Description=result.description,
            TagSpecifications=[
                {
                    "ResourceType": "snapshot",
                    "Tags": _snapshot_tags(context, volume.volume_id, name),
                }
            ],
        )
    except (ClientError, BotoCoreError) as exc:
        result.error = f"Failed to create snapshot: {exc}"
        return result

    result.snapshot_id = response["SnapshotId"]
    print(f"Successfully created snapshot {result.snapshot_id} for volume {volume.volume_id}")
    print("Waiting for snapshot to complete...")
    try:
        ec2.get_waiter("snapshot_completed").wait(SnapshotIds=[result.snapshot_id])
    except (ClientError, BotoCoreError) as exc:
        result.error = f"Snapshot {result.snapshot_id} did not complete: {exc}"
    return result


def create_snapshots(ec2: boto3.client, context: RunContext) -> SnapshotBatch:
    """Snapshot every attached volume, one at a time, and tally the outcome.

    Raises :class:`NoVolumesFoundError` before any snapshot is requested when
    the instance has no attached volumes. A failure on one volume does not stop
    the remaining volumes from being attempted.
    """

    volumes = list_attached_volumes(ec2, context.instance_id)
    if not volumes:
        raise NoVolumesFoundError(f"No volumes found for instance {context.instance_id}")

    batch = SnapshotBatch()
    for volume in volumes:
        print(f"Creating snapshot for volume {volume.volume_id}...")
        result = snapshot_volume(ec2, context, volume)
        if result.error:
            print(f"Failed to snapshot volume {volume.volume_id}: {result.error}", file=sys.stderr)
        batch.add(result)

    print("\nSnapshot creation complete:")
    print(f"Successful snapshots: {batch.tally.success_count}")
    print(f"Failed snapshots: {batch.tally.failure_count}")
    return batch


__all__ = [
    "create_snapshots",
    "list_attached_volumes",
    "resolve_instance_name",
    "snapshot_volume",
    "validate_instance",
]
