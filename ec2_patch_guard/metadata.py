"""Client for the EC2 instance metadata service (IMDS)."""
from __future__ import annotations

from typing import Dict, Optional

import requests

from .config import DEFAULT_METADATA_TIMEOUT, DEFAULT_TOKEN_TTL_SECONDS, METADATA_ENDPOINT
from .errors import MetadataUnavailableError
from .models import InstanceIdentity

TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
TOKEN_HEADER = "X-aws-ec2-metadata-token"


def get_imds_token(
    *,
    timeout: float = DEFAULT_METADATA_TIMEOUT,
    token_ttl: int = DEFAULT_TOKEN_TTL_SECONDS,
) -> Optional[str]:
    """Request an IMDSv2 session token, or ``None`` when v2 is unavailable."""

    try:
        response = requests.put(
            f"{METADATA_ENDPOINT}/api/token",
            headers={TOKEN_TTL_HEADER: str(token_ttl)},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException:
        return None
    return response.text.strip() or None


def get_metadata(
    path: str,
    *,
    timeout: float = DEFAULT_METADATA_TIMEOUT,
    token_ttl: int = DEFAULT_TOKEN_TTL_SECONDS,
) -> str:
    """Return the metadata value at *path*, or ``""`` if it cannot be read.

    A fresh IMDSv2 token is requested on every call. Without a token the
    request falls back to IMDSv1.
    """

    headers: Dict[str, str] = {}
    token = get_imds_token(timeout=timeout, token_ttl=token_ttl)
    if token:
        headers[TOKEN_HEADER] = token

    try:
        response = requests.get(
            f"{METADATA_ENDPOINT}/meta-data/{path.lstrip('/')}",
            headers=headers,
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException:
        return ""
    return response.text.strip()


def resolve_identity(
    *,
    timeout: float = DEFAULT_METADATA_TIMEOUT,
    token_ttl: int = DEFAULT_TOKEN_TTL_SECONDS,
    region: Optional[str] = None,
) -> InstanceIdentity:
    """Look up the instance id and region of the machine we are running on.

    ``region`` overrides the placement region reported by the metadata service.
    """

    instance_id = get_metadata("instance-id", timeout=timeout, token_ttl=token_ttl)
    if not instance_id:
        raise MetadataUnavailableError(
            "Could not read the instance id from the instance metadata service"
        )

    if not region:
        region = get_metadata("placement/region", timeout=timeout, token_ttl=token_ttl)
    if not region:
        raise MetadataUnavailableError(
            "Could not read the region from the instance metadata service"
        )

    return InstanceIdentity(instance_id=instance_id, region=region)


__all__ = ["get_imds_token", "get_metadata", "resolve_identity"]
