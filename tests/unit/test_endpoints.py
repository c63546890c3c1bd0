"""Tests for endpoint, ARN and hosted zone derivation."""

from __future__ import annotations

import pytest

from s3_bucket_operator.exceptions import ValidationError
from s3_bucket_operator.services.aws.endpoints import (
    DomainNameResolver,
    bucket_arn,
    bucket_regional_domain_name,
    hosted_zone_id,
    website_domain,
    website_endpoint,
)
from s3_bucket_operator.services.aws.models import BucketIdentity, Partition, WebsiteConfig

BUCKET = "bucket-name"


class TestRegionalDomainName:
    @pytest.mark.parametrize(
        ("region", "expected"),
        [
            ("", f"{BUCKET}.s3.amazonaws.com"),
            ("custom", f"{BUCKET}.s3.custom.amazonaws.com"),
            ("us-east-1", f"{BUCKET}.s3.amazonaws.com"),
            ("us-west-2", f"{BUCKET}.s3.us-west-2.amazonaws.com"),
            ("us-gov-west-1", f"{BUCKET}.s3.us-gov-west-1.amazonaws.com"),
            ("cn-north-1", f"{BUCKET}.s3.cn-north-1.amazonaws.com.cn"),
        ],
    )
    def test_regional_domain_name(self, region: str, expected: str) -> None:
        assert bucket_regional_domain_name(BUCKET, region) == expected

    def test_empty_name_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            bucket_regional_domain_name("", "us-west-2")

    def test_resolver_matches_function(self) -> None:
        assert DomainNameResolver().resolve(BUCKET, "eu-west-1") == f"{BUCKET}.s3.eu-west-1.amazonaws.com"


class TestArnAndZones:
    def test_arn_per_partition(self) -> None:
        assert bucket_arn(BUCKET) == f"arn:aws:s3:::{BUCKET}"
        assert bucket_arn(BUCKET, Partition.AWS_CN) == f"arn:aws-cn:s3:::{BUCKET}"
        assert bucket_arn(BUCKET, "aws-us-gov") == f"arn:aws-us-gov:s3:::{BUCKET}"

    def test_partition_from_region(self) -> None:
        assert Partition.for_region("cn-northwest-1") is Partition.AWS_CN
        assert Partition.for_region("us-gov-east-1") is Partition.AWS_US_GOV
        assert Partition.for_region("eu-west-1") is Partition.AWS

    def test_hosted_zone_id(self) -> None:
        assert hosted_zone_id("us-west-2") == "Z3BJ6K6RIION7M"
        assert hosted_zone_id("") == "Z3AQBSTGFYJSTF"

    def test_unknown_region_has_no_hosted_zone(self) -> None:
        assert hosted_zone_id("xx-nowhere-9") is None


class TestWebsiteEndpoints:
    def test_dashed_and_dotted_regions(self) -> None:
        assert website_domain("us-west-2") == "s3-website-us-west-2.amazonaws.com"
        assert website_domain("eu-central-1") == "s3-website.eu-central-1.amazonaws.com"
        assert website_endpoint(BUCKET, "us-east-1") == f"{BUCKET}.s3-website-us-east-1.amazonaws.com"

    def test_outputs_without_website(self) -> None:
        outputs = DomainNameResolver().outputs(BucketIdentity.for_region(BUCKET, "eu-west-1"))

        assert outputs.arn == f"arn:aws:s3:::{BUCKET}"
        assert outputs.domain_name == f"{BUCKET}.s3.amazonaws.com"
        assert outputs.regional_domain_name == f"{BUCKET}.s3.eu-west-1.amazonaws.com"
        assert outputs.hosted_zone_id == "Z1BKCTXD74EZPE"
        assert outputs.website_endpoint == ""
        assert outputs.website_domain == ""

    def test_outputs_with_website(self) -> None:
        outputs = DomainNameResolver().outputs(
            BucketIdentity.for_region(BUCKET, "cn-north-1"),
            WebsiteConfig(index_document="index.html"),
        )

        assert outputs.arn == f"arn:aws-cn:s3:::{BUCKET}"
        assert outputs.website_domain == "s3-website.cn-north-1.amazonaws.com.cn"
        assert outputs.website_endpoint == f"{BUCKET}.s3-website.cn-north-1.amazonaws.com.cn"
        assert outputs.to_status()["websiteEndpoint"] == outputs.website_endpoint
