"""Builder for S3 provider instances."""

from __future__ import annotations

import os
from typing import Any

from ..constants import LEGACY_DEFAULT_REGION
from ..services.aws.client import AWSProvider


def default_region() -> str:
    """Region used when a Bucket does not name one.

    Environment Variables:
        AWS_REGION, AWS_DEFAULT_REGION: Checked in that order (default: us-east-1)
    """
    return os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or LEGACY_DEFAULT_REGION


def create_provider_from_spec(spec: dict[str, Any]) -> AWSProvider:
    """Create an S3 provider instance for a Bucket CRD spec.

    The client talks to the bucket's own region. Credentials come from the
    default boto3 chain (environment, web identity, instance profile).

    Args:
        spec: Bucket CRD spec

    Returns:
        Configured S3 provider instance

    Environment Variables:
        AWS_ENDPOINT_URL: Optional S3 endpoint override (e.g. an S3-compatible store)
        S3_PATH_STYLE: Use path-style addressing when "true" (default: false)
    """
    region = spec.get("region") or default_region()
    endpoint = os.getenv("AWS_ENDPOINT_URL") or None
    path_style = os.getenv("S3_PATH_STYLE", "false").lower() == "true"

    return AWSProvider(region=region, endpoint=endpoint, path_style=path_style)
