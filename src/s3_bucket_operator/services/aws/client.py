"""AWS S3 client implementation."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ...constants import LEGACY_DEFAULT_REGION
from ...exceptions import (
    BucketError,
    ConflictError,
    DeadlineExceeded,
    NotFoundError,
    RemoteError,
    TransientError,
)
from ... import metrics
from .models import (
    AccelerationStatus,
    CorsRule,
    EncryptionRule,
    LifecycleExpiration,
    LifecycleRule,
    LifecycleTransition,
    LoggingConfig,
    NoncurrentVersionTransition,
    RedirectAllRequestsTo,
    RequestPayer,
    RoutingRule,
    RoutingRuleCondition,
    RoutingRuleRedirect,
    SSEAlgorithm,
    VersioningMode,
    WebsiteConfig,
)

logger = logging.getLogger(__name__)

# Error codes meaning "the bucket itself is gone"
_BUCKET_NOT_FOUND_CODES = frozenset({"NoSuchBucket", "404", "NotFound"})

_CONFLICT_CODES = frozenset({"BucketAlreadyExists", "BucketAlreadyOwnedByYou", "BucketNotEmpty"})

# HeadBucket answers 403 for a bucket owned by another account
_FORBIDDEN_CODES = frozenset({"403", "AccessDenied", "Forbidden"})

_TRANSIENT_CODES = frozenset({
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "ServiceUnavailable",
    "InternalError",
    "OperationAborted",
    "503",
    "500",
})

# Error codes meaning "this sub-resource is not configured"
_UNCONFIGURED_CODES = frozenset({
    "NoSuchBucketPolicy",
    "NoSuchCORSConfiguration",
    "NoSuchLifecycleConfiguration",
    "NoSuchTagSet",
    "NoSuchWebsiteConfiguration",
    "ReplicationConfigurationNotFoundError",
    "ServerSideEncryptionConfigurationNotFoundError",
})

# Objects removed per DeleteObjects request
DELETE_BATCH_SIZE = 1000

_ALL_USERS = "http://acs.amazonaws.com/groups/global/AllUsers"
_AUTHENTICATED_USERS = "http://acs.amazonaws.com/groups/global/AuthenticatedUsers"


def error_code(error: ClientError) -> str:
    """Remote error code of a ClientError."""
    return str(error.response.get("Error", {}).get("Code", ""))


def translate_client_error(error: ClientError, message: str) -> BucketError:
    """Map a botocore ClientError onto the bucket error classes.

    Args:
        error: The remote failure
        message: Context for the error message

    Returns:
        The matching BucketError (not raised)
    """
    code = error_code(error)
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    text = f"{message}: {error}"

    if code in _BUCKET_NOT_FOUND_CODES:
        return NotFoundError(text, code=code)
    if code in _CONFLICT_CODES:
        return ConflictError(text, code=code)
    if code in _TRANSIENT_CODES or status == 503:
        return TransientError(text, code=code, status_code=status)
    return RemoteError(text, code=code, status_code=status)


def _log_failure(operation: str, name: str, error: BucketError) -> None:
    # Retried or tolerated failures are not errors yet
    if isinstance(error, (TransientError, NotFoundError)):
        logger.warning(f"Failed to {operation} for bucket {name}: {error}")
    else:
        logger.error(f"Failed to {operation} for bucket {name}: {error}")


def canned_acl_from_grants(grants: list[dict[str, Any]]) -> str:
    """Best-matching canned ACL for a list of grants."""
    public = {g.get("Permission") for g in grants if g.get("Grantee", {}).get("URI") == _ALL_USERS}
    authenticated = {
        g.get("Permission") for g in grants if g.get("Grantee", {}).get("URI") == _AUTHENTICATED_USERS
    }
    if {"READ", "WRITE"} <= public:
        return "public-read-write"
    if "READ" in public:
        return "public-read"
    if "READ" in authenticated:
        return "authenticated-read"
    return "private"


def _cors_from_api(rule: dict[str, Any]) -> CorsRule:
    return CorsRule(
        allowed_methods=tuple(rule.get("AllowedMethods", [])),
        allowed_origins=tuple(rule.get("AllowedOrigins", [])),
        allowed_headers=tuple(rule.get("AllowedHeaders", [])),
        expose_headers=tuple(rule.get("ExposeHeaders", [])),
        max_age_seconds=int(rule.get("MaxAgeSeconds", 0)),
    )


def _cors_to_api(rule: CorsRule) -> dict[str, Any]:
    api_rule: dict[str, Any] = {
        "AllowedMethods": list(rule.allowed_methods),
        "AllowedOrigins": list(rule.allowed_origins),
    }
    if rule.allowed_headers:
        api_rule["AllowedHeaders"] = list(rule.allowed_headers)
    if rule.expose_headers:
        api_rule["ExposeHeaders"] = list(rule.expose_headers)
    if rule.max_age_seconds:
        api_rule["MaxAgeSeconds"] = rule.max_age_seconds
    return api_rule


def _date(value: Any) -> str:
    """Lifecycle dates come back as datetimes; keep only the calendar day."""
    if not value:
        return ""
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def _lifecycle_from_api(rule: dict[str, Any]) -> LifecycleRule:
    prefix = rule.get("Prefix", "")
    tags: list[tuple[str, str]] = []
    api_filter = rule.get("Filter") or {}
    if "And" in api_filter:
        prefix = api_filter["And"].get("Prefix", "")
        tags = [(t["Key"], t["Value"]) for t in api_filter["And"].get("Tags", [])]
    elif "Tag" in api_filter:
        tags = [(api_filter["Tag"]["Key"], api_filter["Tag"]["Value"])]
    elif "Prefix" in api_filter:
        prefix = api_filter["Prefix"]

    expiration = None
    if "Expiration" in rule:
        exp = rule["Expiration"]
        expiration = LifecycleExpiration(
            days=int(exp.get("Days", 0)),
            date=_date(exp.get("Date")),
            expired_object_delete_marker=bool(exp.get("ExpiredObjectDeleteMarker", False)),
        )

    return LifecycleRule(
        id=rule.get("ID", ""),
        prefix=prefix,
        enabled=rule.get("Status") == "Enabled",
        tags=tuple(tags),
        expiration=expiration,
        transitions=frozenset(
            LifecycleTransition(
                storage_class=t["StorageClass"],
                days=int(t.get("Days", 0)),
                date=_date(t.get("Date")),
            )
            for t in rule.get("Transitions", [])
        ),
        noncurrent_version_expiration_days=int(
            rule.get("NoncurrentVersionExpiration", {}).get("NoncurrentDays", 0)
        ),
        noncurrent_version_transitions=frozenset(
            NoncurrentVersionTransition(days=int(t.get("NoncurrentDays", 0)), storage_class=t["StorageClass"])
            for t in rule.get("NoncurrentVersionTransitions", [])
        ),
        abort_incomplete_multipart_upload_days=int(
            rule.get("AbortIncompleteMultipartUpload", {}).get("DaysAfterInitiation", 0)
        ),
    )


def _lifecycle_to_api(rule: LifecycleRule) -> dict[str, Any]:
    api_rule: dict[str, Any] = {"ID": rule.id, "Status": "Enabled" if rule.enabled else "Disabled"}

    if rule.tags:
        api_rule["Filter"] = {
            "And": {
                "Prefix": rule.prefix,
                "Tags": [{"Key": k, "Value": v} for k, v in rule.tags],
            }
        }
    else:
        api_rule["Filter"] = {"Prefix": rule.prefix}

    if rule.expiration is not None:
        expiration: dict[str, Any] = {}
        if rule.expiration.days:
            expiration["Days"] = rule.expiration.days
        if rule.expiration.date:
            expiration["Date"] = f"{rule.expiration.date}T00:00:00Z"
        if rule.expiration.expired_object_delete_marker:
            expiration["ExpiredObjectDeleteMarker"] = True
        if expiration:
            api_rule["Expiration"] = expiration

    transitions = []
    for transition in sorted(rule.transitions, key=lambda t: (t.days, t.date, t.storage_class)):
        item: dict[str, Any] = {"StorageClass": transition.storage_class}
        if transition.date:
            item["Date"] = f"{transition.date}T00:00:00Z"
        else:
            item["Days"] = transition.days
        transitions.append(item)
    if transitions:
        api_rule["Transitions"] = transitions

    if rule.noncurrent_version_expiration_days:
        api_rule["NoncurrentVersionExpiration"] = {"NoncurrentDays": rule.noncurrent_version_expiration_days}
    if rule.noncurrent_version_transitions:
        api_rule["NoncurrentVersionTransitions"] = [
            {"NoncurrentDays": t.days, "StorageClass": t.storage_class}
            for t in sorted(rule.noncurrent_version_transitions, key=lambda t: (t.days, t.storage_class))
        ]
    if rule.abort_incomplete_multipart_upload_days:
        api_rule["AbortIncompleteMultipartUpload"] = {
            "DaysAfterInitiation": rule.abort_incomplete_multipart_upload_days
        }
    return api_rule


def _website_from_api(response: dict[str, Any]) -> WebsiteConfig:
    redirect_all = None
    if "RedirectAllRequestsTo" in response:
        target = response["RedirectAllRequestsTo"]
        redirect_all = RedirectAllRequestsTo(host_name=target["HostName"], protocol=target.get("Protocol", ""))

    routing_rules = []
    for rule in response.get("RoutingRules", []):
        condition = None
        if "Condition" in rule:
            condition = RoutingRuleCondition(
                key_prefix_equals=rule["Condition"].get("KeyPrefixEquals", ""),
                http_error_code_returned_equals=rule["Condition"].get("HttpErrorCodeReturnedEquals", ""),
            )
        redirect = rule.get("Redirect", {})
        routing_rules.append(
            RoutingRule(
                condition=condition,
                redirect=RoutingRuleRedirect(
                    host_name=redirect.get("HostName", ""),
                    http_redirect_code=redirect.get("HttpRedirectCode", ""),
                    protocol=redirect.get("Protocol", ""),
                    replace_key_prefix_with=redirect.get("ReplaceKeyPrefixWith", ""),
                    replace_key_with=redirect.get("ReplaceKeyWith", ""),
                ),
            )
        )

    return WebsiteConfig(
        index_document=response.get("IndexDocument", {}).get("Suffix", ""),
        error_document=response.get("ErrorDocument", {}).get("Key", ""),
        redirect_all_requests_to=redirect_all,
        routing_rules=tuple(routing_rules),
    )


def _website_to_api(website: WebsiteConfig) -> dict[str, Any]:
    if website.redirect_all_requests_to is not None:
        target: dict[str, Any] = {"HostName": website.redirect_all_requests_to.host_name}
        if website.redirect_all_requests_to.protocol:
            target["Protocol"] = website.redirect_all_requests_to.protocol
        return {"RedirectAllRequestsTo": target}

    api_website: dict[str, Any] = {}
    if website.index_document:
        api_website["IndexDocument"] = {"Suffix": website.index_document}
    if website.error_document:
        api_website["ErrorDocument"] = {"Key": website.error_document}

    rules = []
    for rule in website.routing_rules:
        api_rule: dict[str, Any] = {}
        if rule.condition is not None:
            condition = {}
            if rule.condition.key_prefix_equals:
                condition["KeyPrefixEquals"] = rule.condition.key_prefix_equals
            if rule.condition.http_error_code_returned_equals:
                condition["HttpErrorCodeReturnedEquals"] = rule.condition.http_error_code_returned_equals
            api_rule["Condition"] = condition
        redirect = {
            "HostName": rule.redirect.host_name,
            "HttpRedirectCode": rule.redirect.http_redirect_code,
            "Protocol": rule.redirect.protocol,
            "ReplaceKeyPrefixWith": rule.redirect.replace_key_prefix_with,
            "ReplaceKeyWith": rule.redirect.replace_key_with,
        }
        api_rule["Redirect"] = {k: v for k, v in redirect.items() if v}
        rules.append(api_rule)
    if rules:
        api_website["RoutingRules"] = rules
    return api_website


class AWSProvider:
    """AWS S3 provider implementation."""

    def __init__(
        self,
        region: str,
        endpoint: str | None = None,
        path_style: bool = False,
        client: Any = None,
    ) -> None:
        """Initialize AWS S3 provider.

        Credentials come from the default boto3 chain.

        Args:
            region: Region the client talks to
            endpoint: Optional S3 endpoint URL override
            path_style: Use path-style addressing
            client: Pre-built boto3 S3 client (used by tests)
        """
        self.region = region
        self.endpoint = endpoint

        if client is None:
            config = Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if path_style else "auto"},
                retries={"max_attempts": 1, "mode": "standard"},
            )
            client = boto3.client("s3", endpoint_url=endpoint, region_name=region or None, config=config)
        self.client = client

    def _call(self, operation: str, name: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        """Invoke a client method, recording the outcome and translating failures."""
        try:
            response = fn(**kwargs)
        except ClientError as e:
            metrics.bucket_operations_total.labels(operation=operation, result="failure").inc()
            error = translate_client_error(e, f"{operation} {name}")
            _log_failure(operation, name, error)
            raise error from e
        metrics.bucket_operations_total.labels(operation=operation, result="success").inc()
        return response

    def _get(self, operation: str, name: str, fn: Callable[..., Any], **kwargs: Any) -> dict[str, Any] | None:
        """Like _call, but an unconfigured sub-resource reads as None."""
        try:
            response = fn(**kwargs)
        except ClientError as e:
            if error_code(e) in _UNCONFIGURED_CODES:
                return None
            metrics.bucket_operations_total.labels(operation=operation, result="failure").inc()
            error = translate_client_error(e, f"{operation} {name}")
            _log_failure(operation, name, error)
            raise error from e
        metrics.bucket_operations_total.labels(operation=operation, result="success").inc()
        return response

    def bucket_exists(self, name: str) -> bool:
        """Check if bucket exists."""
        try:
            self.client.head_bucket(Bucket=name)
            return True
        except ClientError as e:
            code = error_code(e)
            if code in _BUCKET_NOT_FOUND_CODES:
                return False
            if code in _FORBIDDEN_CODES:
                raise ConflictError(f"bucket {name} is owned by another account", code="BucketAlreadyExists") from e
            raise translate_client_error(e, f"head bucket {name}") from e

    def create_bucket(self, name: str, region: str, acl: str | None = None) -> None:
        """Create a bucket in ``region``."""
        params: dict[str, Any] = {"Bucket": name}
        if acl:
            params["ACL"] = acl
        # The legacy default region rejects an explicit location constraint
        if region and region != LEGACY_DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}
        self._call("create bucket", name, self.client.create_bucket, **params)
        logger.info(f"Created bucket {name} in {region or LEGACY_DEFAULT_REGION}")

    def delete_bucket(self, name: str) -> None:
        """Delete a bucket, which must already be empty."""
        self._call("delete bucket", name, self.client.delete_bucket, Bucket=name)
        logger.info(f"Successfully deleted bucket {name}")

    def empty_bucket(
        self,
        name: str,
        deadline: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> int:
        """Delete every object version and delete marker in a bucket.

        Args:
            name: Bucket name
            deadline: Absolute time (on ``clock``) after which draining stops
            clock: Monotonic clock (defaults to time.monotonic)

        Returns:
            Number of versions and delete markers removed

        Raises:
            DeadlineExceeded: If the deadline passes before the bucket is empty
        """
        clock = clock or time.monotonic
        removed = 0
        logger.info(f"Emptying bucket {name}")

        try:
            paginator = self.client.get_paginator("list_object_versions")
            for page in paginator.paginate(Bucket=name):
                batch = [
                    {"Key": item["Key"], "VersionId": item["VersionId"]}
                    for item in page.get("Versions", []) + page.get("DeleteMarkers", [])
                ]
                for start in range(0, len(batch), DELETE_BATCH_SIZE):
                    if deadline is not None and clock() >= deadline:
                        raise DeadlineExceeded(f"deadline passed while emptying bucket {name} ({removed} removed)")
                    chunk = batch[start:start + DELETE_BATCH_SIZE]
                    response = self.client.delete_objects(
                        Bucket=name,
                        Delete={"Objects": chunk, "Quiet": True},
                    )
                    errors = response.get("Errors", [])
                    for error in errors:
                        logger.warning(f"Failed to delete {error.get('Key')} from {name}: {error.get('Message')}")
                    removed += len(chunk) - len(errors)
        except ClientError as e:
            logger.error(f"Failed to empty bucket {name}: {e}")
            raise translate_client_error(e, f"empty bucket {name}") from e

        logger.info(f"Removed {removed} object versions from bucket {name}")
        return removed

    def get_bucket_region(self, name: str) -> str:
        """Region the bucket lives in."""
        response = self._call("get bucket location", name, self.client.get_bucket_location, Bucket=name)
        location = response.get("LocationConstraint") or LEGACY_DEFAULT_REGION
        # Historical alias for eu-west-1
        if location == "EU":
            return "eu-west-1"
        return location

    def get_bucket_acl(self, name: str) -> str | None:
        response = self._call("get bucket acl", name, self.client.get_bucket_acl, Bucket=name)
        return canned_acl_from_grants(response.get("Grants", []))

    def put_bucket_acl(self, name: str, acl: str) -> None:
        self._call("put bucket acl", name, self.client.put_bucket_acl, Bucket=name, ACL=acl)

    def get_bucket_policy(self, name: str) -> str | None:
        """Get bucket policy.

        Returns:
            Policy JSON text if a policy exists, None if no policy is set
        """
        response = self._get("get bucket policy", name, self.client.get_bucket_policy, Bucket=name)
        return response["Policy"] if response else None

    def put_bucket_policy(self, name: str, policy: str) -> None:
        self._call("put bucket policy", name, self.client.put_bucket_policy, Bucket=name, Policy=policy)

    def delete_bucket_policy(self, name: str) -> None:
        self._call("delete bucket policy", name, self.client.delete_bucket_policy, Bucket=name)

    def get_bucket_cors(self, name: str) -> frozenset[CorsRule]:
        response = self._get("get bucket cors", name, self.client.get_bucket_cors, Bucket=name)
        if not response:
            return frozenset()
        return frozenset(_cors_from_api(rule) for rule in response.get("CORSRules", []))

    def put_bucket_cors(self, name: str, rules: frozenset[CorsRule]) -> None:
        self._call(
            "put bucket cors",
            name,
            self.client.put_bucket_cors,
            Bucket=name,
            CORSConfiguration={"CORSRules": [_cors_to_api(rule) for rule in rules]},
        )

    def delete_bucket_cors(self, name: str) -> None:
        self._call("delete bucket cors", name, self.client.delete_bucket_cors, Bucket=name)

    def get_bucket_website(self, name: str) -> WebsiteConfig | None:
        response = self._get("get bucket website", name, self.client.get_bucket_website, Bucket=name)
        return _website_from_api(response) if response else None

    def put_bucket_website(self, name: str, website: WebsiteConfig) -> None:
        self._call(
            "put bucket website",
            name,
            self.client.put_bucket_website,
            Bucket=name,
            WebsiteConfiguration=_website_to_api(website),
        )

    def delete_bucket_website(self, name: str) -> None:
        self._call("delete bucket website", name, self.client.delete_bucket_website, Bucket=name)

    def get_bucket_versioning(self, name: str) -> VersioningMode:
        response = self._call("get bucket versioning", name, self.client.get_bucket_versioning, Bucket=name)
        return VersioningMode(response.get("Status", ""))

    def put_bucket_versioning(self, name: str, mode: VersioningMode) -> None:
        self._call(
            "put bucket versioning",
            name,
            self.client.put_bucket_versioning,
            Bucket=name,
            VersioningConfiguration={"Status": VersioningMode(mode).value},
        )

    def get_bucket_accelerate(self, name: str) -> AccelerationStatus | None:
        response = self._call(
            "get bucket accelerate",
            name,
            self.client.get_bucket_accelerate_configuration,
            Bucket=name,
        )
        status = response.get("Status")
        return AccelerationStatus(status) if status else None

    def put_bucket_accelerate(self, name: str, status: AccelerationStatus) -> None:
        self._call(
            "put bucket accelerate",
            name,
            self.client.put_bucket_accelerate_configuration,
            Bucket=name,
            AccelerateConfiguration={"Status": AccelerationStatus(status).value},
        )

    def get_bucket_request_payment(self, name: str) -> RequestPayer:
        response = self._call(
            "get bucket request payment", name, self.client.get_bucket_request_payment, Bucket=name
        )
        return RequestPayer(response.get("Payer", RequestPayer.BUCKET_OWNER.value))

    def put_bucket_request_payment(self, name: str, payer: RequestPayer) -> None:
        self._call(
            "put bucket request payment",
            name,
            self.client.put_bucket_request_payment,
            Bucket=name,
            RequestPaymentConfiguration={"Payer": RequestPayer(payer).value},
        )

    def get_bucket_logging(self, name: str) -> LoggingConfig | None:
        response = self._call("get bucket logging", name, self.client.get_bucket_logging, Bucket=name)
        enabled = response.get("LoggingEnabled")
        if not enabled:
            return None
        return LoggingConfig(target_bucket=enabled["TargetBucket"], target_prefix=enabled.get("TargetPrefix", ""))

    def put_bucket_logging(self, name: str, logging_config: LoggingConfig | None) -> None:
        status: dict[str, Any] = {}
        if logging_config is not None:
            status["LoggingEnabled"] = {
                "TargetBucket": logging_config.target_bucket,
                "TargetPrefix": logging_config.target_prefix,
            }
        self._call(
            "put bucket logging",
            name,
            self.client.put_bucket_logging,
            Bucket=name,
            BucketLoggingStatus=status,
        )

    def get_bucket_lifecycle(self, name: str) -> frozenset[LifecycleRule]:
        response = self._get(
            "get bucket lifecycle", name, self.client.get_bucket_lifecycle_configuration, Bucket=name
        )
        if not response:
            return frozenset()
        return frozenset(_lifecycle_from_api(rule) for rule in response.get("Rules", []))

    def put_bucket_lifecycle(self, name: str, rules: frozenset[LifecycleRule]) -> None:
        ordered = sorted(rules, key=lambda rule: rule.id)
        self._call(
            "put bucket lifecycle",
            name,
            self.client.put_bucket_lifecycle_configuration,
            Bucket=name,
            LifecycleConfiguration={"Rules": [_lifecycle_to_api(rule) for rule in ordered]},
        )

    def delete_bucket_lifecycle(self, name: str) -> None:
        self._call("delete bucket lifecycle", name, self.client.delete_bucket_lifecycle, Bucket=name)

    def get_bucket_replication(self, name: str) -> dict[str, Any] | None:
        response = self._get("get bucket replication", name, self.client.get_bucket_replication, Bucket=name)
        if not response:
            return None
        return response.get("ReplicationConfiguration")

    def put_bucket_replication(self, name: str, configuration: dict[str, Any]) -> None:
        self._call(
            "put bucket replication",
            name,
            self.client.put_bucket_replication,
            Bucket=name,
            ReplicationConfiguration=configuration,
        )

    def delete_bucket_replication(self, name: str) -> None:
        self._call("delete bucket replication", name, self.client.delete_bucket_replication, Bucket=name)

    def get_bucket_encryption(self, name: str) -> frozenset[EncryptionRule]:
        response = self._get("get bucket encryption", name, self.client.get_bucket_encryption, Bucket=name)
        if not response:
            return frozenset()
        rules = response.get("ServerSideEncryptionConfiguration", {}).get("Rules", [])
        return frozenset(
            EncryptionRule(
                sse_algorithm=SSEAlgorithm(rule["ApplyServerSideEncryptionByDefault"]["SSEAlgorithm"]),
                kms_master_key_id=rule["ApplyServerSideEncryptionByDefault"].get("KMSMasterKeyID", ""),
            )
            for rule in rules
            if "ApplyServerSideEncryptionByDefault" in rule
        )

    def put_bucket_encryption(self, name: str, rules: frozenset[EncryptionRule]) -> None:
        api_rules = []
        for rule in sorted(rules, key=lambda r: (r.sse_algorithm.value, r.kms_master_key_id)):
            default: dict[str, Any] = {"SSEAlgorithm": rule.sse_algorithm.value}
            if rule.kms_master_key_id:
                default["KMSMasterKeyID"] = rule.kms_master_key_id
            api_rules.append({"ApplyServerSideEncryptionByDefault": default})
        self._call(
            "put bucket encryption",
            name,
            self.client.put_bucket_encryption,
            Bucket=name,
            ServerSideEncryptionConfiguration={"Rules": api_rules},
        )

    def delete_bucket_encryption(self, name: str) -> None:
        self._call("delete bucket encryption", name, self.client.delete_bucket_encryption, Bucket=name)

    def get_bucket_tags(self, name: str) -> dict[str, str]:
        response = self._get("get bucket tags", name, self.client.get_bucket_tagging, Bucket=name)
        if not response:
            return {}
        return {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}

    def put_bucket_tags(self, name: str, tags: dict[str, str]) -> None:
        tag_set = [{"Key": k, "Value": v} for k, v in sorted(tags.items())]
        self._call(
            "put bucket tags",
            name,
            self.client.put_bucket_tagging,
            Bucket=name,
            Tagging={"TagSet": tag_set},
        )

    def delete_bucket_tags(self, name: str) -> None:
        self._call("delete bucket tags", name, self.client.delete_bucket_tagging, Bucket=name)
