"""Models for S3 bucket configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

SCHEMA_LEGACY = "legacy"
SCHEMA_FILTER = "filter"


class Partition(str, Enum):
    """Sovereign grouping of regions."""

    AWS = "aws"
    AWS_US_GOV = "aws-us-gov"
    AWS_CN = "aws-cn"

    @classmethod
    def for_region(cls, region: str) -> "Partition":
        """Partition a region belongs to, by region prefix."""
        if region.startswith("cn-"):
            return cls.AWS_CN
        if region.startswith("us-gov-"):
            return cls.AWS_US_GOV
        return cls.AWS


class RuleStatus(str, Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class VersioningMode(str, Enum):
    UNSET = ""
    ENABLED = "Enabled"
    SUSPENDED = "Suspended"


class AccelerationStatus(str, Enum):
    ENABLED = "Enabled"
    SUSPENDED = "Suspended"


class RequestPayer(str, Enum):
    BUCKET_OWNER = "BucketOwner"
    REQUESTER = "Requester"


class SSEAlgorithm(str, Enum):
    AES256 = "AES256"
    KMS = "aws:kms"


def freeze_tags(tags: Mapping[str, str] | Any) -> tuple[tuple[str, str], ...]:
    """Turn a tag mapping (or iterable of pairs) into key-sorted pairs."""
    if isinstance(tags, Mapping):
        pairs = tags.items()
    else:
        pairs = tags or ()
    return tuple(sorted((str(k), str(v)) for k, v in pairs))


@dataclass(frozen=True)
class BucketIdentity:
    """Name, region and partition of a bucket."""

    name: str
    region: str
    partition: Partition

    @classmethod
    def for_region(cls, name: str, region: str) -> "BucketIdentity":
        return cls(name=name, region=region, partition=Partition.for_region(region))


@dataclass(frozen=True)
class Reference:
    """A value that is only known once another resource exists."""

    resource: str
    attribute: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.attribute}"


@dataclass(frozen=True)
class ResolvedValue:
    """A concrete value."""

    value: str


DeferredValue = Union[Reference, ResolvedValue]


@dataclass(frozen=True)
class CorsRule:
    """One CORS rule. List fields keep their declared order."""

    allowed_methods: tuple[str, ...]
    allowed_origins: tuple[str, ...]
    allowed_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    max_age_seconds: int = 0


@dataclass(frozen=True)
class LifecycleExpiration:
    days: int = 0
    date: str = ""
    expired_object_delete_marker: bool = False


@dataclass(frozen=True)
class LifecycleTransition:
    storage_class: str
    days: int = 0
    date: str = ""


@dataclass(frozen=True)
class NoncurrentVersionTransition:
    days: int
    storage_class: str


@dataclass(frozen=True)
class LifecycleRule:
    """One lifecycle rule; transitions are unordered sets."""

    id: str = ""
    prefix: str = ""
    enabled: bool = True
    tags: tuple[tuple[str, str], ...] = ()
    expiration: LifecycleExpiration | None = None
    transitions: frozenset[LifecycleTransition] = frozenset()
    noncurrent_version_expiration_days: int = 0
    noncurrent_version_transitions: frozenset[NoncurrentVersionTransition] = frozenset()
    abort_incomplete_multipart_upload_days: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", freeze_tags(self.tags))
        object.__setattr__(self, "transitions", frozenset(self.transitions))
        object.__setattr__(self, "noncurrent_version_transitions", frozenset(self.noncurrent_version_transitions))


@dataclass(frozen=True)
class PrefixSelector:
    """Replicate objects whose key starts with ``prefix``."""

    prefix: str = ""


@dataclass(frozen=True)
class TagAndSelector:
    """Replicate objects matching a prefix and every tag."""

    prefix: str = ""
    tags: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", freeze_tags(self.tags))


ReplicationSelector = Union[PrefixSelector, TagAndSelector]


@dataclass(frozen=True)
class ReplicationDestination:
    bucket: str
    storage_class: str = ""
    account: DeferredValue | None = None
    replica_kms_key_id: DeferredValue | None = None
    owner_override: str = ""


@dataclass(frozen=True)
class ReplicationRule:
    """A replication rule in canonical form.

    ``schema`` records how the rule was declared so it can be written back
    in the same shape; it is not part of the rule's identity.
    """

    destination: ReplicationDestination
    id: str = ""
    status: RuleStatus = RuleStatus.ENABLED
    priority: int = 0
    selector: ReplicationSelector = PrefixSelector()
    sse_kms_encrypted_objects_only: bool = False
    delete_marker_replication: RuleStatus = RuleStatus.DISABLED
    schema: str = field(default=SCHEMA_FILTER, compare=False)


@dataclass(frozen=True)
class ReplicationConfiguration:
    role: str
    rules: frozenset[ReplicationRule] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", frozenset(self.rules))


@dataclass(frozen=True)
class EncryptionRule:
    sse_algorithm: SSEAlgorithm
    kms_master_key_id: str = ""


@dataclass(frozen=True)
class LoggingConfig:
    target_bucket: str
    target_prefix: str = ""


@dataclass(frozen=True)
class RedirectAllRequestsTo:
    host_name: str
    protocol: str = ""


@dataclass(frozen=True)
class RoutingRuleCondition:
    key_prefix_equals: str = ""
    http_error_code_returned_equals: str = ""


@dataclass(frozen=True)
class RoutingRuleRedirect:
    host_name: str = ""
    http_redirect_code: str = ""
    protocol: str = ""
    replace_key_prefix_with: str = ""
    replace_key_with: str = ""


@dataclass(frozen=True)
class RoutingRule:
    redirect: RoutingRuleRedirect
    condition: RoutingRuleCondition | None = None


@dataclass(frozen=True)
class WebsiteConfig:
    """Static website hosting. Routing rules are evaluated in order."""

    index_document: str = ""
    error_document: str = ""
    redirect_all_requests_to: RedirectAllRequestsTo | None = None
    routing_rules: tuple[RoutingRule, ...] = ()


@dataclass
class DesiredConfiguration:
    """Everything the caller wants the bucket to look like."""

    name: str
    region: str = ""
    acl: str | None = None
    force_destroy: bool = False
    versioning: VersioningMode = VersioningMode.UNSET
    acceleration_status: AccelerationStatus | None = None
    request_payer: RequestPayer | None = None
    policy: str | None = None
    logging: LoggingConfig | None = None
    cors_rules: frozenset[CorsRule] = frozenset()
    lifecycle_rules: frozenset[LifecycleRule] = frozenset()
    replication: dict[str, Any] | None = None
    encryption_rules: frozenset[EncryptionRule] = frozenset()
    website: WebsiteConfig | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> BucketIdentity:
        return BucketIdentity.for_region(self.name, self.region)


@dataclass
class ObservedConfiguration:
    """The bucket as read back from the remote API."""

    name: str
    region: str = ""
    acl: str | None = None
    versioning: VersioningMode = VersioningMode.UNSET
    acceleration_status: AccelerationStatus | None = None
    request_payer: RequestPayer = RequestPayer.BUCKET_OWNER
    policy: str | None = None
    logging: LoggingConfig | None = None
    cors_rules: frozenset[CorsRule] = frozenset()
    lifecycle_rules: frozenset[LifecycleRule] = frozenset()
    replication: ReplicationConfiguration | None = None
    encryption_rules: frozenset[EncryptionRule] = frozenset()
    website: WebsiteConfig | None = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BucketOutputs:
    """Derived attributes of a bucket."""

    arn: str
    domain_name: str
    regional_domain_name: str
    hosted_zone_id: str | None = None
    website_endpoint: str = ""
    website_domain: str = ""

    def to_status(self) -> dict[str, Any]:
        """Outputs keyed the way the Bucket status reports them."""
        return {
            "arn": self.arn,
            "domainName": self.domain_name,
            "regionalDomainName": self.regional_domain_name,
            "hostedZoneId": self.hosted_zone_id or "",
            "websiteEndpoint": self.website_endpoint,
            "websiteDomain": self.website_domain,
        }
