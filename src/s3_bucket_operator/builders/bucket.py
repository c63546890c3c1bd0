"""Builder for bucket configurations."""

from __future__ import annotations

import json
import uuid
from dataclasses import replace
from enum import Enum
from typing import Any, TypeVar

from ..constants import DEFAULT_NAME_PREFIX
from ..exceptions import ValidationError
from ..reconcile.hashing import block_key
from ..services.aws.models import (
    AccelerationStatus,
    CorsRule,
    DesiredConfiguration,
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

_E = TypeVar("_E", bound=Enum)

# Length of the random part of generated names
GENERATED_SUFFIX_LENGTH = 26


def _enum(cls: type[_E], value: Any, field_name: str) -> _E:
    try:
        return cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in cls)
        raise ValidationError(f"{field_name} must be one of {allowed}, got {value!r}") from None


def generate_bucket_name(prefix: str = DEFAULT_NAME_PREFIX) -> str:
    """Unique bucket name starting with ``prefix``."""
    return f"{prefix}{uuid.uuid4().hex[:GENERATED_SUFFIX_LENGTH]}"


def resolve_bucket_name(spec: dict[str, Any], generated_name: str | None = None) -> str:
    """Name of the bucket described by ``spec``.

    Args:
        spec: Bucket CRD spec
        generated_name: Name generated on an earlier reconcile, reused so the
            bucket keeps its identity

    Raises:
        ValidationError: If both name and namePrefix are given
    """
    name = spec.get("name")
    prefix = spec.get("namePrefix")
    if name and prefix:
        raise ValidationError("name and namePrefix are mutually exclusive")
    if name:
        return str(name)
    if generated_name:
        return generated_name
    return generate_bucket_name(prefix or DEFAULT_NAME_PREFIX)


def _versioning(spec: dict[str, Any]) -> VersioningMode:
    if "versioning" in spec:
        enabled = (spec.get("versioning") or {}).get("enabled", False)
    elif "versioningEnabled" in spec:
        enabled = spec["versioningEnabled"]
    else:
        return VersioningMode.UNSET
    return VersioningMode.ENABLED if enabled else VersioningMode.SUSPENDED


def _policy(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _cors_rule(raw: dict[str, Any]) -> CorsRule:
    if not raw.get("allowedMethods"):
        raise ValidationError("CORS rule requires allowedMethods")
    return CorsRule(
        allowed_methods=tuple(raw.get("allowedMethods", [])),
        allowed_origins=tuple(raw.get("allowedOrigins", [])),
        allowed_headers=tuple(raw.get("allowedHeaders", [])),
        expose_headers=tuple(raw.get("exposeHeaders", [])),
        max_age_seconds=int(raw.get("maxAgeSeconds", 0)),
    )


def _lifecycle_rule(raw: dict[str, Any]) -> LifecycleRule:
    expiration = None
    if raw.get("expiration"):
        exp = raw["expiration"]
        expiration = LifecycleExpiration(
            days=int(exp.get("days", 0)),
            date=str(exp.get("date", "")),
            expired_object_delete_marker=bool(exp.get("expiredObjectDeleteMarker", False)),
        )

    rule = LifecycleRule(
        id=str(raw.get("id", "")),
        prefix=str(raw.get("prefix", "")),
        enabled=bool(raw.get("enabled", True)),
        tags=raw.get("tags") or {},
        expiration=expiration,
        transitions=frozenset(
            LifecycleTransition(
                storage_class=t["storageClass"],
                days=int(t.get("days", 0)),
                date=str(t.get("date", "")),
            )
            for t in raw.get("transitions", [])
        ),
        noncurrent_version_expiration_days=int((raw.get("noncurrentVersionExpiration") or {}).get("days", 0)),
        noncurrent_version_transitions=frozenset(
            NoncurrentVersionTransition(days=int(t.get("days", 0)), storage_class=t["storageClass"])
            for t in raw.get("noncurrentVersionTransitions", [])
        ),
        abort_incomplete_multipart_upload_days=int(raw.get("abortIncompleteMultipartUploadDays", 0)),
    )
    if not rule.id:
        # Stable across reconciles, so an unnamed rule is not rewritten every time
        rule = replace(rule, id=f"rule-{block_key(rule)[:16]}")
    return rule


def _encryption_rule(raw: dict[str, Any]) -> EncryptionRule:
    return EncryptionRule(
        sse_algorithm=_enum(SSEAlgorithm, raw.get("sseAlgorithm"), "sseAlgorithm"),
        kms_master_key_id=str(raw.get("kmsMasterKeyId", "")),
    )


def _routing_rule(raw: dict[str, Any]) -> RoutingRule:
    condition = None
    if raw.get("condition"):
        condition = RoutingRuleCondition(
            key_prefix_equals=str(raw["condition"].get("keyPrefixEquals", "")),
            http_error_code_returned_equals=str(raw["condition"].get("httpErrorCodeReturnedEquals", "")),
        )
    redirect = raw.get("redirect") or {}
    return RoutingRule(
        condition=condition,
        redirect=RoutingRuleRedirect(
            host_name=str(redirect.get("hostName", "")),
            http_redirect_code=str(redirect.get("httpRedirectCode", "")),
            protocol=str(redirect.get("protocol", "")),
            replace_key_prefix_with=str(redirect.get("replaceKeyPrefixWith", "")),
            replace_key_with=str(redirect.get("replaceKeyWith", "")),
        ),
    )


def _website(raw: dict[str, Any] | None) -> WebsiteConfig | None:
    if not raw:
        return None

    redirect_all = None
    target = raw.get("redirectAllRequestsTo")
    if isinstance(target, str):
        # "https://example.com" or a bare host name
        protocol, _, host = target.rpartition("://")
        redirect_all = RedirectAllRequestsTo(host_name=host, protocol=protocol)
    elif target:
        redirect_all = RedirectAllRequestsTo(
            host_name=str(target.get("hostName", "")),
            protocol=str(target.get("protocol", "")),
        )

    routing_rules = raw.get("routingRules") or []
    if isinstance(routing_rules, str):
        try:
            routing_rules = json.loads(routing_rules)
        except ValueError as e:
            raise ValidationError(f"website routingRules is not valid JSON: {e}") from None

    return WebsiteConfig(
        index_document=str(raw.get("indexDocument", "")),
        error_document=str(raw.get("errorDocument", "")),
        redirect_all_requests_to=redirect_all,
        routing_rules=tuple(_routing_rule(rule) for rule in routing_rules),
    )


def create_desired_configuration_from_spec(
    spec: dict[str, Any],
    provider_region: str,
    generated_name: str | None = None,
) -> DesiredConfiguration:
    """Create a desired bucket configuration from CRD spec.

    Args:
        spec: Bucket CRD spec
        provider_region: Region from the provider, used when the Bucket spec sets none
        generated_name: Previously generated bucket name to reuse

    Returns:
        Desired configuration for the reconciler

    Raises:
        ValidationError: If the Bucket spec is malformed
    """
    acceleration = spec.get("accelerationStatus")
    request_payer = spec.get("requestPayer")
    logging_spec = spec.get("logging")

    return DesiredConfiguration(
        name=resolve_bucket_name(spec, generated_name),
        region=spec.get("region") or provider_region,
        acl=spec.get("acl"),
        force_destroy=bool(spec.get("forceDestroy", False)),
        versioning=_versioning(spec),
        acceleration_status=(
            _enum(AccelerationStatus, acceleration, "accelerationStatus") if acceleration else None
        ),
        request_payer=_enum(RequestPayer, request_payer, "requestPayer") if request_payer else None,
        policy=_policy(spec.get("policy")),
        logging=(
            LoggingConfig(
                target_bucket=logging_spec["targetBucket"],
                target_prefix=str(logging_spec.get("targetPrefix", "")),
            )
            if logging_spec
            else None
        ),
        cors_rules=frozenset(_cors_rule(rule) for rule in spec.get("corsRules", [])),
        lifecycle_rules=frozenset(_lifecycle_rule(rule) for rule in spec.get("lifecycleRules", [])),
        replication=spec.get("replication"),
        encryption_rules=frozenset(_encryption_rule(rule) for rule in spec.get("encryptionRules", [])),
        website=_website(spec.get("website")),
        tags={str(k): str(v) for k, v in (spec.get("tags") or {}).items()},
    )
