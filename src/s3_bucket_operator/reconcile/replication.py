"""Normalization of replication configurations.

Replication rules arrive in one of two shapes:

* the legacy schema: a bare ``prefix`` and no ``filter``, no priority and no
  delete-marker replication control;
* the filter schema: a ``filter`` block holding a prefix and/or tags, an
  explicit ``priority`` and a ``deleteMarkerReplicationStatus``.

Both are migrated into a single canonical ``ReplicationRule`` so that a rule
declared one way compares equal to the same rule read back the other way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Union

from ..exceptions import PreconditionError, ValidationError
from ..services.aws.models import (
    SCHEMA_FILTER,
    SCHEMA_LEGACY,
    DeferredValue,
    PrefixSelector,
    Reference,
    ReplicationConfiguration,
    ReplicationDestination,
    ReplicationRule,
    ResolvedValue,
    RuleStatus,
    TagAndSelector,
)
from .sets import SetPlan, diff

logger = logging.getLogger(__name__)

VERSIONING_REQUIRED_MESSAGE = "versioning must be enabled to allow S3 bucket replication"

ReferenceLookup = Union[Mapping[str, str], Callable[[Reference], "str | None"]]


@dataclass(frozen=True)
class ReplicationPlan:
    """What has to change to converge replication."""

    desired: ReplicationConfiguration | None
    observed: ReplicationConfiguration | None
    role_changed: bool
    rules: SetPlan[ReplicationRule]

    @property
    def remove(self) -> bool:
        """The whole configuration has to be deleted."""
        return self.desired is None and self.observed is not None

    @property
    def is_empty(self) -> bool:
        return not self.role_changed and self.rules.is_empty


def _status(value: Any, field_name: str, default: RuleStatus | None = None) -> RuleStatus:
    if value in (None, "") and default is not None:
        return default
    try:
        return RuleStatus(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be one of Enabled, Disabled, got {value!r}") from None


def _tags(raw: Any) -> tuple[tuple[str, str], ...]:
    """Tags given as a mapping or as a list of {key, value} entries."""
    if isinstance(raw, Mapping):
        return tuple(sorted((str(k), str(v)) for k, v in raw.items()))
    pairs = []
    for tag in raw or []:
        key = tag.get("key", tag.get("Key"))
        value = tag.get("value", tag.get("Value", ""))
        pairs.append((str(key), str(value)))
    return tuple(sorted(pairs))


class ReplicationNormalizer:
    """Migrates both replication schemas into one comparable form.

    Args:
        lookup: Resolves deferred references, either a mapping keyed by
            ``"<resource>.<attribute>"`` or a callable taking a Reference
    """

    def __init__(self, lookup: ReferenceLookup | None = None) -> None:
        self.lookup = lookup

    # Reference resolution

    def resolve_value(self, value: Any) -> DeferredValue | None:
        """Turn a raw or deferred value into a ResolvedValue (or None)."""
        if value is None or value == "":
            return None
        if isinstance(value, ResolvedValue):
            return value
        if isinstance(value, Mapping):
            value = Reference(resource=str(value.get("resource", "")), attribute=str(value.get("attribute", "")))
        if isinstance(value, Reference):
            resolved = self._lookup(value)
            if resolved is None:
                raise ValidationError(f"reference {value} cannot be resolved yet")
            return ResolvedValue(resolved)
        return ResolvedValue(str(value))

    def _lookup(self, reference: Reference) -> str | None:
        if self.lookup is None:
            return None
        if isinstance(self.lookup, Mapping):
            return self.lookup.get(str(reference))
        return self.lookup(reference)

    def resolve(self, config: ReplicationConfiguration) -> ReplicationConfiguration:
        """Resolve every deferred destination value of an already built configuration."""
        rules = []
        for rule in config.rules:
            destination = replace(
                rule.destination,
                account=self.resolve_value(rule.destination.account),
                replica_kms_key_id=self.resolve_value(rule.destination.replica_kms_key_id),
            )
            rules.append(replace(rule, destination=destination))
        return ReplicationConfiguration(role=config.role, rules=frozenset(rules))

    # Desired (declared) configurations

    def normalize(self, raw: Mapping[str, Any], versioning_enabled: bool) -> ReplicationConfiguration:
        """Normalize a declared replication configuration.

        Args:
            raw: Declared configuration with ``role`` and ``rules``
            versioning_enabled: Whether the bucket will have versioning enabled

        Returns:
            Canonical replication configuration

        Raises:
            PreconditionError: If versioning is not enabled
            ValidationError: If the configuration is malformed or a
                reference cannot be resolved
        """
        if not versioning_enabled:
            raise PreconditionError(VERSIONING_REQUIRED_MESSAGE)

        role = raw.get("role")
        if not role:
            raise ValidationError("replication role is required")

        raw_rules = raw.get("rules") or []
        if not raw_rules:
            raise ValidationError("replication requires at least one rule")

        rules = [self.normalize_rule(rule) for rule in raw_rules]

        ids = [rule.id for rule in rules if rule.id]
        duplicates = sorted({rule_id for rule_id in ids if ids.count(rule_id) > 1})
        if duplicates:
            raise ValidationError(f"duplicate replication rule ids: {', '.join(duplicates)}")

        return ReplicationConfiguration(role=str(role), rules=frozenset(rules))

    def normalize_rule(self, raw: Mapping[str, Any]) -> ReplicationRule:
        """Normalize one declared rule, in either schema."""
        rule_id = str(raw.get("id") or "")
        status = _status(raw.get("status"), f"replication rule {rule_id!r} status")
        destination = self._destination(raw.get("destination") or {}, rule_id)
        sse_only = bool(
            ((raw.get("sourceSelectionCriteria") or {}).get("sseKmsEncryptedObjects") or {}).get("enabled", False)
        )

        if "filter" in raw and raw.get("filter") is not None:
            if raw.get("prefix"):
                raise ValidationError(f"replication rule {rule_id!r} cannot set both prefix and filter")
            return ReplicationRule(
                id=rule_id,
                status=status,
                priority=int(raw.get("priority") or 0),
                selector=self._filter_selector(raw["filter"]),
                destination=destination,
                sse_kms_encrypted_objects_only=sse_only,
                delete_marker_replication=_status(
                    raw.get("deleteMarkerReplicationStatus"),
                    f"replication rule {rule_id!r} deleteMarkerReplicationStatus",
                    default=RuleStatus.DISABLED,
                ),
                schema=SCHEMA_FILTER,
            )

        if raw.get("priority"):
            raise ValidationError(f"replication rule {rule_id!r} priority requires a filter block")
        if raw.get("deleteMarkerReplicationStatus") not in (None, "", RuleStatus.DISABLED.value):
            raise ValidationError(f"replication rule {rule_id!r} delete marker replication requires a filter block")

        return ReplicationRule(
            id=rule_id,
            status=status,
            priority=0,
            selector=PrefixSelector(prefix=str(raw.get("prefix") or "")),
            destination=destination,
            sse_kms_encrypted_objects_only=sse_only,
            delete_marker_replication=RuleStatus.DISABLED,
            schema=SCHEMA_LEGACY,
        )

    def _filter_selector(self, raw: Mapping[str, Any]) -> PrefixSelector | TagAndSelector:
        conjunction = raw.get("and")
        if conjunction is not None:
            return TagAndSelector(prefix=str(conjunction.get("prefix") or ""), tags=_tags(conjunction.get("tags")))
        tags = _tags(raw.get("tags"))
        if tags:
            return TagAndSelector(prefix=str(raw.get("prefix") or ""), tags=tags)
        return PrefixSelector(prefix=str(raw.get("prefix") or ""))

    def _destination(self, raw: Mapping[str, Any], rule_id: str) -> ReplicationDestination:
        bucket = raw.get("bucket")
        if not bucket:
            raise ValidationError(f"replication rule {rule_id!r} destination bucket is required")
        translation = raw.get("accessControlTranslation") or {}
        return ReplicationDestination(
            bucket=str(bucket),
            storage_class=str(raw.get("storageClass") or ""),
            account=self.resolve_value(raw.get("account")),
            replica_kms_key_id=self.resolve_value(raw.get("replicaKmsKeyId")),
            owner_override=str(translation.get("owner") or ""),
        )

    # Remote (API) configurations

    def from_api(self, response: Mapping[str, Any] | None) -> ReplicationConfiguration | None:
        """Normalize a GetBucketReplication response."""
        if not response:
            return None
        config = response.get("ReplicationConfiguration", response)
        rules = frozenset(self._rule_from_api(rule) for rule in config.get("Rules", []))
        return ReplicationConfiguration(role=config.get("Role", ""), rules=rules)

    def _rule_from_api(self, raw: Mapping[str, Any]) -> ReplicationRule:
        destination = raw.get("Destination", {})
        sse = (raw.get("SourceSelectionCriteria") or {}).get("SseKmsEncryptedObjects") or {}
        dest = ReplicationDestination(
            bucket=destination.get("Bucket", ""),
            storage_class=destination.get("StorageClass", ""),
            account=self.resolve_value(destination.get("Account")),
            replica_kms_key_id=self.resolve_value(
                (destination.get("EncryptionConfiguration") or {}).get("ReplicaKmsKeyID")
            ),
            owner_override=(destination.get("AccessControlTranslation") or {}).get("Owner", ""),
        )

        common = {
            "id": raw.get("ID", ""),
            "status": _status(raw.get("Status"), "Status"),
            "destination": dest,
            "sse_kms_encrypted_objects_only": sse.get("Status") == RuleStatus.ENABLED.value,
        }

        if "Filter" not in raw:
            return ReplicationRule(selector=PrefixSelector(raw.get("Prefix", "")), schema=SCHEMA_LEGACY, **common)

        api_filter = raw.get("Filter") or {}
        if "And" in api_filter:
            conjunction = api_filter["And"]
            selector: PrefixSelector | TagAndSelector = TagAndSelector(
                prefix=conjunction.get("Prefix", ""), tags=_tags(conjunction.get("Tags"))
            )
        elif "Tag" in api_filter:
            selector = TagAndSelector(tags=_tags([api_filter["Tag"]]))
        else:
            selector = PrefixSelector(api_filter.get("Prefix", ""))

        return ReplicationRule(
            selector=selector,
            priority=int(raw.get("Priority") or 0),
            delete_marker_replication=_status(
                (raw.get("DeleteMarkerReplication") or {}).get("Status"),
                "DeleteMarkerReplication",
                default=RuleStatus.DISABLED,
            ),
            schema=SCHEMA_FILTER,
            **common,
        )

    def to_api(self, config: ReplicationConfiguration) -> dict[str, Any]:
        """Serialize a configuration for PutBucketReplication.

        The legacy shape is only used when every rule was declared in it;
        the remote API does not accept a mix of both shapes.
        """
        legacy = all(_legacy_compatible(rule) for rule in config.rules)
        ordered = sorted(config.rules, key=lambda rule: (-rule.priority, rule.id))
        return {
            "Role": config.role,
            "Rules": [_rule_to_api(rule, legacy) for rule in ordered],
        }

    def compare(
        self,
        desired: ReplicationConfiguration | None,
        observed: ReplicationConfiguration | None,
    ) -> ReplicationPlan:
        """Plan the changes from ``observed`` to ``desired``."""
        desired_rules = desired.rules if desired is not None else frozenset()
        observed_rules = observed.rules if observed is not None else frozenset()
        role_changed = (desired.role if desired else "") != (observed.role if observed else "")
        return ReplicationPlan(
            desired=desired,
            observed=observed,
            role_changed=role_changed,
            rules=diff(desired_rules, observed_rules),
        )


def _legacy_compatible(rule: ReplicationRule) -> bool:
    return (
        rule.schema == SCHEMA_LEGACY
        and isinstance(rule.selector, PrefixSelector)
        and rule.priority == 0
        and rule.delete_marker_replication is RuleStatus.DISABLED
    )


def _value(deferred: DeferredValue | None) -> str:
    if deferred is None:
        return ""
    if isinstance(deferred, Reference):
        raise ValidationError(f"reference {deferred} must be resolved before it is written")
    return deferred.value


def _rule_to_api(rule: ReplicationRule, legacy: bool) -> dict[str, Any]:
    destination: dict[str, Any] = {"Bucket": rule.destination.bucket}
    if rule.destination.storage_class:
        destination["StorageClass"] = rule.destination.storage_class
    if rule.destination.account is not None:
        destination["Account"] = _value(rule.destination.account)
    if rule.destination.replica_kms_key_id is not None:
        destination["EncryptionConfiguration"] = {"ReplicaKmsKeyID": _value(rule.destination.replica_kms_key_id)}
    if rule.destination.owner_override:
        destination["AccessControlTranslation"] = {"Owner": rule.destination.owner_override}

    api_rule: dict[str, Any] = {"Status": rule.status.value, "Destination": destination}
    if rule.id:
        api_rule["ID"] = rule.id
    if rule.sse_kms_encrypted_objects_only:
        api_rule["SourceSelectionCriteria"] = {"SseKmsEncryptedObjects": {"Status": "Enabled"}}

    if legacy:
        api_rule["Prefix"] = rule.selector.prefix
        return api_rule

    if isinstance(rule.selector, TagAndSelector):
        api_rule["Filter"] = {
            "And": {
                "Prefix": rule.selector.prefix,
                "Tags": [{"Key": k, "Value": v} for k, v in rule.selector.tags],
            }
        }
    else:
        api_rule["Filter"] = {"Prefix": rule.selector.prefix}
    api_rule["Priority"] = rule.priority
    api_rule["DeleteMarkerReplication"] = {"Status": rule.delete_marker_replication.value}
    return api_rule
