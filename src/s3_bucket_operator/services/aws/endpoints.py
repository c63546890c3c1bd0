"""Endpoint, ARN and hosted zone derivation for buckets.

Nothing here performs network I/O. Unknown regions are accepted and
treated as literal endpoint segments, since new regions appear before this
table is updated.
"""

from __future__ import annotations

import logging

from ...constants import LEGACY_DEFAULT_REGION
from ...exceptions import ValidationError
from .models import BucketIdentity, BucketOutputs, Partition, WebsiteConfig

logger = logging.getLogger(__name__)

# Route 53 hosted zone ids of the S3 website endpoints, per region
HOSTED_ZONE_IDS: dict[str, str] = {
    "af-south-1": "Z11KHD8FBVPUYU",
    "ap-east-1": "ZNB98KWMFR0R6",
    "ap-northeast-1": "Z2M4EHUR26P7ZW",
    "ap-northeast-2": "Z3W03O7B5YMIYP",
    "ap-northeast-3": "Z2YQB5RD63NC85",
    "ap-south-1": "Z11RGJOFQNVJUP",
    "ap-southeast-1": "Z3O0J2DXBE1FTB",
    "ap-southeast-2": "Z1WCIGYICN2BYD",
    "ca-central-1": "Z1QDHH18159H29",
    "cn-north-1": "Z5CN8UMXT92WN",
    "cn-northwest-1": "Z282HJ1KT0DH03",
    "eu-central-1": "Z21DNDUVLTQW6Q",
    "eu-north-1": "Z3BAZG2TWCNX0D",
    "eu-south-1": "Z30OZKI7KPW7MI",
    "eu-west-1": "Z1BKCTXD74EZPE",
    "eu-west-2": "Z3GKZC51ZF0DB4",
    "eu-west-3": "Z3R1K369G5AVDG",
    "me-south-1": "Z1MPMWCPA7YB62",
    "sa-east-1": "Z7KQH4QJS55SO",
    "us-east-1": "Z3AQBSTGFYJSTF",
    "us-east-2": "Z2O1EMRO9K5GLX",
    "us-gov-east-1": "Z2NIFVYYW2VKV1",
    "us-gov-west-1": "Z31GFT0UA1I2HV",
    "us-west-1": "Z2F56UZL2M1ACD",
    "us-west-2": "Z3BJ6K6RIION7M",
}

# Regions whose website endpoint uses "s3-website-<region>" instead of "s3-website.<region>"
_DASHED_WEBSITE_REGIONS = frozenset({
    "ap-northeast-1",
    "ap-southeast-1",
    "ap-southeast-2",
    "eu-west-1",
    "sa-east-1",
    "us-east-1",
    "us-gov-west-1",
    "us-west-1",
    "us-west-2",
})


def dns_suffix(region: str) -> str:
    """DNS suffix of the partition a region belongs to."""
    if Partition.for_region(region) is Partition.AWS_CN:
        return "amazonaws.com.cn"
    return "amazonaws.com"


def bucket_domain_name(name: str) -> str:
    """Global (region-less) domain name of a bucket."""
    return f"{name}.s3.amazonaws.com"


def bucket_regional_domain_name(name: str, region: str) -> str:
    """Regional endpoint hostname for a bucket.

    Args:
        name: Bucket name
        region: Region, possibly empty or not (yet) known

    Returns:
        Hostname of the bucket's regional endpoint

    Raises:
        ValidationError: If the bucket name is empty
    """
    if not name:
        raise ValidationError("bucket name must not be empty")
    if not region or region == LEGACY_DEFAULT_REGION:
        return bucket_domain_name(name)
    return f"{name}.s3.{region}.{dns_suffix(region)}"


def bucket_arn(name: str, partition: Partition | str = Partition.AWS) -> str:
    """ARN of a bucket."""
    return f"arn:{Partition(partition).value}:s3:::{name}"


def hosted_zone_id(region: str) -> str | None:
    """Hosted zone id for a region, or None if the region is not in the table."""
    zone_id = HOSTED_ZONE_IDS.get(region or LEGACY_DEFAULT_REGION)
    if zone_id is None:
        logger.warning(f"No hosted zone id known for region {region}")
    return zone_id


def website_domain(region: str) -> str:
    """Domain of the S3 website endpoint for a region."""
    region = region or LEGACY_DEFAULT_REGION
    if region in _DASHED_WEBSITE_REGIONS:
        return f"s3-website-{region}.{dns_suffix(region)}"
    return f"s3-website.{region}.{dns_suffix(region)}"


def website_endpoint(name: str, region: str) -> str:
    """Website endpoint hostname for a bucket."""
    return f"{name}.{website_domain(region)}"


class DomainNameResolver:
    """Derives hostnames and other outputs from a bucket identity."""

    def resolve(self, name: str, region: str) -> str:
        """Regional hostname for ``name`` in ``region``."""
        return bucket_regional_domain_name(name, region)

    def outputs(self, identity: BucketIdentity, website: WebsiteConfig | None = None) -> BucketOutputs:
        """All derived attributes for a bucket.

        The website endpoint and domain are empty unless a website is configured.
        """
        endpoint = ""
        domain = ""
        if website is not None:
            endpoint = website_endpoint(identity.name, identity.region)
            domain = website_domain(identity.region)

        return BucketOutputs(
            arn=bucket_arn(identity.name, identity.partition),
            domain_name=self.resolve(identity.name, ""),
            regional_domain_name=self.resolve(identity.name, identity.region),
            hosted_zone_id=hosted_zone_id(identity.region),
            website_endpoint=endpoint,
            website_domain=domain,
        )
