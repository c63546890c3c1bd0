"""Bucket lifecycle state machine.

Drives one bucket from its declared configuration to the remote state:
create (or adopt) it, converge every sub-resource, and destroy it again.
Every remote call goes through the bounded retry helpers; every
sub-resource failure is collected instead of aborting the others.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .. import metrics
from ..config import ReconcilerSettings
from ..constants import LEGACY_DEFAULT_REGION
from ..exceptions import (
    BucketError,
    ConflictError,
    DeadlineExceeded,
    InvalidStateTransition,
    NotFoundError,
    PartialConfigurationFailure,
    ValidationError,
)
from ..logging import log_bucket_event
from ..services.aws.endpoints import DomainNameResolver
from ..services.aws.models import (
    AccelerationStatus,
    BucketIdentity,
    BucketOutputs,
    DesiredConfiguration,
    EncryptionRule,
    ObservedConfiguration,
    ReplicationConfiguration,
    SSEAlgorithm,
    VersioningMode,
)
from ..services.s3.base import S3Provider
from ..tracing import trace_span
from ..utils.retry import RetryPolicy, retry_call, wait_until
from ..validation.configuration import validate_encryption_rules, validate_website
from ..validation.naming import NameValidator
from .hashing import canonicalize
from .replication import ReferenceLookup, ReplicationNormalizer
from .sets import SetReconciler

logger = logging.getLogger(__name__)


class BucketState(str, Enum):
    ABSENT = "Absent"
    CREATING = "Creating"
    CONVERGING = "Converging"
    STABLE = "Stable"
    DELETING = "Deleting"
    FAILED = "Failed"


_TRANSITIONS: dict[BucketState, frozenset[BucketState]] = {
    BucketState.ABSENT: frozenset({BucketState.CREATING, BucketState.CONVERGING, BucketState.DELETING}),
    BucketState.CREATING: frozenset({BucketState.CONVERGING, BucketState.FAILED}),
    BucketState.CONVERGING: frozenset({BucketState.STABLE, BucketState.FAILED}),
    BucketState.STABLE: frozenset({BucketState.CONVERGING, BucketState.DELETING, BucketState.ABSENT}),
    BucketState.DELETING: frozenset({BucketState.ABSENT}),
    BucketState.FAILED: frozenset({
        BucketState.CREATING,
        BucketState.CONVERGING,
        BucketState.DELETING,
        BucketState.ABSENT,
    }),
}

# Order in which sub-resources are converged
APPLY_ORDER = (
    "acl",
    "policy",
    "cors",
    "website",
    "versioning",
    "acceleration",
    "request_payment",
    "logging",
    "lifecycle",
    "replication",
    "encryption",
    "tags",
)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a successful ensure()."""

    state: BucketState
    outputs: BucketOutputs
    created: bool = False
    changed: tuple[str, ...] = field(default_factory=tuple)


# S3 applies SSE-S3 to every bucket and falls back to it when encryption is deleted
DEFAULT_ENCRYPTION = frozenset({EncryptionRule(SSEAlgorithm.AES256)})


def _same_region(a: str, b: str) -> bool:
    return (a or LEGACY_DEFAULT_REGION) == (b or LEGACY_DEFAULT_REGION)


def _parse_policy(bucket: str, policy: str) -> Any:
    try:
        return json.loads(policy)
    except ValueError as e:
        raise ValidationError(f"policy for bucket {bucket} is not valid JSON: {e}") from None


class BucketReconciler:
    """Creates, converges and destroys a single bucket.

    Args:
        provider: Remote bucket operations
        settings: Attempt and time bounds
        lookup: Resolves deferred replication values
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)
        state: Initial state, e.g. STABLE for a bucket that was reconciled before
    """

    def __init__(
        self,
        provider: S3Provider,
        settings: ReconcilerSettings | None = None,
        lookup: ReferenceLookup | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        state: BucketState = BucketState.ABSENT,
    ) -> None:
        self.provider = provider
        self.settings = settings or ReconcilerSettings()
        self.policy = RetryPolicy.from_settings(self.settings)
        self.normalizer = ReplicationNormalizer(lookup)
        self.validator = NameValidator()
        self.resolver = DomainNameResolver()
        self.sets = SetReconciler()
        self.sleep = sleep
        self.clock = clock
        self.state = state

    def _transition(self, to: BucketState, bucket: str) -> None:
        if to == self.state:
            return
        if to not in _TRANSITIONS[self.state]:
            raise InvalidStateTransition(f"bucket {bucket} cannot move from {self.state.value} to {to.value}")
        metrics.state_transitions_total.labels(from_state=self.state.value, to_state=to.value).inc()
        logger.debug(f"Bucket {bucket}: {self.state.value} -> {to.value}")
        self.state = to

    def _remote(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return retry_call(lambda: fn(*args, **kwargs), operation, self.policy, sleep=self.sleep)

    # Validation

    def validate(self, desired: DesiredConfiguration) -> ReplicationConfiguration | None:
        """Check everything that can be checked without a remote call.

        Returns:
            The normalized replication configuration, if one is declared

        Raises:
            ValidationError: If the name or a configuration block is malformed
            PreconditionError: If replication is declared without versioning
        """
        self.validator.validate(desired.name, desired.region)
        validate_website(desired.website)
        validate_encryption_rules(desired.encryption_rules)
        if desired.policy:
            _parse_policy(desired.name, desired.policy)
        if desired.replication is None:
            return None
        return self.normalizer.normalize(
            desired.replication,
            versioning_enabled=desired.versioning is VersioningMode.ENABLED,
        )

    # Ensure

    def ensure(self, desired: DesiredConfiguration) -> ReconcileResult:
        """Create the bucket if needed and converge it to ``desired``.

        Returns:
            The resulting state, outputs and changed sub-resources

        Raises:
            ValidationError, PreconditionError: Before any remote call
            ConflictError: If the name is taken or the bucket lives elsewhere
            EventualConsistencyTimeout: If a new bucket never became visible
            PartialConfigurationFailure: If any sub-resource failed to converge
        """
        name = desired.name
        replication = self.validate(desired)

        with trace_span("bucket.ensure", bucket=name, attributes={"bucket.region": desired.region}):
            exists = self._remote("head bucket", self.provider.bucket_exists, name)

            created = False
            if not exists:
                if self.state is BucketState.STABLE:
                    log_bucket_event(
                        logger, name, "drift", "BucketMissing",
                        "Bucket no longer exists, recreating", level=logging.WARNING,
                    )
                    self._transition(BucketState.ABSENT, name)
                self._create(desired)
                created = True

            self._transition(BucketState.CONVERGING, name)
            try:
                observed = self.read(name)
                if not created and desired.region and not _same_region(desired.region, observed.region):
                    raise ConflictError(
                        f"bucket {name} exists in region {observed.region}, not {desired.region}"
                    )
                changed = self._converge(desired, observed, replication, created)
            except BucketError:
                self._transition(BucketState.FAILED, name)
                raise

            self._transition(BucketState.STABLE, name)
            region = desired.region or observed.region
            outputs = self.outputs(BucketIdentity.for_region(name, region), desired)

        if changed:
            log_bucket_event(logger, name, "converge", "Updated", f"Changed {', '.join(changed)}", changed=changed)
        return ReconcileResult(state=self.state, outputs=outputs, created=created, changed=tuple(changed))

    def _create(self, desired: DesiredConfiguration) -> None:
        name = desired.name
        self._transition(BucketState.CREATING, name)
        try:
            self._remote("create bucket", self.provider.create_bucket, name, desired.region, desired.acl)
            wait_until(
                lambda: self.provider.bucket_exists(name),
                "wait bucket exists",
                self.policy,
                timeout=self.settings.existence_timeout,
                sleep=self.sleep,
                clock=self.clock,
            )
        except BucketError as e:
            log_bucket_event(logger, name, "create", "CreationFailed", str(e), level=logging.ERROR)
            self._transition(BucketState.FAILED, name)
            raise
        log_bucket_event(logger, name, "create", "Created", f"Bucket created in {desired.region or LEGACY_DEFAULT_REGION}")

    def _converge(
        self,
        desired: DesiredConfiguration,
        observed: ObservedConfiguration,
        replication: ReplicationConfiguration | None,
        created: bool,
    ) -> list[str]:
        appliers: dict[str, Callable[[], bool]] = {
            "acl": lambda: self._apply_acl(desired, observed),
            "policy": lambda: self._apply_policy(desired, observed),
            "cors": lambda: self._apply_cors(desired, observed),
            "website": lambda: self._apply_website(desired, observed),
            "versioning": lambda: self._apply_versioning(desired, observed),
            "acceleration": lambda: self._apply_acceleration(desired, observed),
            "request_payment": lambda: self._apply_request_payment(desired, observed),
            "logging": lambda: self._apply_logging(desired, observed),
            "lifecycle": lambda: self._apply_lifecycle(desired, observed),
            "replication": lambda: self._apply_replication(desired.name, replication, observed),
            "encryption": lambda: self._apply_encryption(desired, observed),
            "tags": lambda: self._apply_tags(desired, observed),
        }

        changed: list[str] = []
        failures: dict[str, Exception] = {}
        for resource in APPLY_ORDER:
            try:
                with trace_span(f"bucket.apply.{resource}", bucket=desired.name):
                    if appliers[resource]():
                        changed.append(resource)
                        if not created:
                            metrics.drift_detected_total.labels(resource_type=resource).inc()
            except BucketError as e:
                log_bucket_event(
                    logger, desired.name, "converge", "SubresourceFailed",
                    f"Failed to apply {resource}: {e}", level=logging.ERROR, resource=resource,
                )
                failures[resource] = e

        if failures:
            raise PartialConfigurationFailure(desired.name, failures)
        return changed

    def _apply_acl(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.acl is None or desired.acl == observed.acl:
            return False
        self._remote("put bucket acl", self.provider.put_bucket_acl, desired.name, desired.acl)
        return True

    def _apply_policy(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.policy is None:
            return False
        if desired.policy == "":
            if not observed.policy:
                return False
            self._remote("delete bucket policy", self.provider.delete_bucket_policy, desired.name)
            return True
        if observed.policy and _parse_policy(desired.name, desired.policy) == json.loads(observed.policy):
            return False
        self._remote("put bucket policy", self.provider.put_bucket_policy, desired.name, desired.policy)
        return True

    def _apply_cors(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        plan = self.sets.diff(desired.cors_rules, observed.cors_rules)
        if plan.is_empty:
            return False
        if not desired.cors_rules:
            self._remote("delete bucket cors", self.provider.delete_bucket_cors, desired.name)
        else:
            self._remote("put bucket cors", self.provider.put_bucket_cors, desired.name, desired.cors_rules)
        return True

    def _apply_website(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.website is None:
            if observed.website is None:
                return False
            self._remote("delete bucket website", self.provider.delete_bucket_website, desired.name)
            return True
        if observed.website is not None and canonicalize(desired.website) == canonicalize(observed.website):
            return False
        self._remote("put bucket website", self.provider.put_bucket_website, desired.name, desired.website)
        return True

    def _apply_versioning(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.versioning is VersioningMode.UNSET:
            return False
        # A bucket that was never versioned behaves as suspended
        current = observed.versioning or VersioningMode.SUSPENDED
        if desired.versioning is current:
            return False
        self._remote("put bucket versioning", self.provider.put_bucket_versioning, desired.name, desired.versioning)
        return True

    def _apply_acceleration(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.acceleration_status is None:
            return False
        current = observed.acceleration_status or AccelerationStatus.SUSPENDED
        if desired.acceleration_status is current:
            return False
        self._remote(
            "put bucket accelerate", self.provider.put_bucket_accelerate, desired.name, desired.acceleration_status
        )
        return True

    def _apply_request_payment(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.request_payer is None or desired.request_payer is observed.request_payer:
            return False
        self._remote(
            "put bucket request payment",
            self.provider.put_bucket_request_payment,
            desired.name,
            desired.request_payer,
        )
        return True

    def _apply_logging(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if desired.logging == observed.logging:
            return False
        self._remote("put bucket logging", self.provider.put_bucket_logging, desired.name, desired.logging)
        return True

    def _apply_lifecycle(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        plan = self.sets.diff(desired.lifecycle_rules, observed.lifecycle_rules)
        if plan.is_empty:
            return False
        if not desired.lifecycle_rules:
            self._remote("delete bucket lifecycle", self.provider.delete_bucket_lifecycle, desired.name)
        else:
            self._remote(
                "put bucket lifecycle", self.provider.put_bucket_lifecycle, desired.name, desired.lifecycle_rules
            )
        return True

    def _apply_replication(
        self,
        name: str,
        replication: ReplicationConfiguration | None,
        observed: ObservedConfiguration,
    ) -> bool:
        plan = self.normalizer.compare(replication, observed.replication)
        if plan.remove:
            self._remote("delete bucket replication", self.provider.delete_bucket_replication, name)
            return True
        if replication is None or plan.is_empty:
            return False
        self._remote(
            "put bucket replication",
            self.provider.put_bucket_replication,
            name,
            self.normalizer.to_api(replication),
        )
        return True

    def _apply_encryption(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        observed_rules = observed.encryption_rules
        if not desired.encryption_rules and observed_rules == DEFAULT_ENCRYPTION:
            return False
        plan = self.sets.diff(desired.encryption_rules, observed_rules)
        if plan.is_empty:
            return False
        if not desired.encryption_rules:
            self._remote("delete bucket encryption", self.provider.delete_bucket_encryption, desired.name)
        else:
            self._remote(
                "put bucket encryption", self.provider.put_bucket_encryption, desired.name, desired.encryption_rules
            )
        return True

    def _apply_tags(self, desired: DesiredConfiguration, observed: ObservedConfiguration) -> bool:
        if dict(desired.tags) == dict(observed.tags):
            return False
        if not desired.tags:
            self._remote("delete bucket tags", self.provider.delete_bucket_tags, desired.name)
        else:
            self._remote("put bucket tags", self.provider.put_bucket_tags, desired.name, dict(desired.tags))
        return True

    # Read

    def read(self, name: str) -> ObservedConfiguration:
        """Read every sub-resource of an existing bucket.

        Raises:
            NotFoundError: If the bucket does not exist
        """
        with trace_span("bucket.read", bucket=name):
            provider = self.provider
            return ObservedConfiguration(
                name=name,
                region=self._remote("get bucket location", provider.get_bucket_region, name),
                acl=self._remote("get bucket acl", provider.get_bucket_acl, name),
                versioning=self._remote("get bucket versioning", provider.get_bucket_versioning, name),
                acceleration_status=self._remote("get bucket accelerate", provider.get_bucket_accelerate, name),
                request_payer=self._remote("get bucket request payment", provider.get_bucket_request_payment, name),
                policy=self._remote("get bucket policy", provider.get_bucket_policy, name),
                logging=self._remote("get bucket logging", provider.get_bucket_logging, name),
                cors_rules=self._remote("get bucket cors", provider.get_bucket_cors, name),
                lifecycle_rules=self._remote("get bucket lifecycle", provider.get_bucket_lifecycle, name),
                replication=self.normalizer.from_api(
                    self._remote("get bucket replication", provider.get_bucket_replication, name)
                ),
                encryption_rules=self._remote("get bucket encryption", provider.get_bucket_encryption, name),
                website=self._remote("get bucket website", provider.get_bucket_website, name),
                tags=self._remote("get bucket tags", provider.get_bucket_tags, name),
            )

    # Destroy

    def destroy(self, desired: DesiredConfiguration, deadline: float | None = None) -> None:
        """Delete the bucket.

        Deleting a bucket that does not exist succeeds. With ``force_destroy``
        every object version is drained first, until ``deadline``.

        Args:
            desired: The bucket's configuration (name and force_destroy are used)
            deadline: Absolute time on the reconciler's clock; defaults to
                now plus the configured drain timeout

        Raises:
            ConflictError: If the bucket is not empty and force_destroy is off
            DeadlineExceeded: If draining did not finish in time
        """
        name = desired.name
        prior = self.state
        self._transition(BucketState.DELETING, name)
        if deadline is None:
            deadline = self.clock() + self.settings.drain_timeout

        try:
            with trace_span("bucket.destroy", bucket=name, attributes={"bucket.force_destroy": desired.force_destroy}):
                if self._remote("head bucket", self.provider.bucket_exists, name):
                    self._delete(desired, deadline)
                else:
                    log_bucket_event(logger, name, "destroy", "AlreadyAbsent", "Bucket does not exist")
        except BucketError as e:
            log_bucket_event(logger, name, "destroy", "DeleteFailed", str(e), level=logging.ERROR)
            # A failed delete leaves the bucket where it was
            self.state = prior
            raise

        self._transition(BucketState.ABSENT, name)

    def _delete(self, desired: DesiredConfiguration, deadline: float) -> None:
        name = desired.name
        while True:
            if desired.force_destroy:
                removed = self.provider.empty_bucket(name, deadline=deadline, clock=self.clock)
                if removed:
                    log_bucket_event(logger, name, "destroy", "Drained", f"Removed {removed} object versions")
            try:
                self._remote("delete bucket", self.provider.delete_bucket, name)
            except NotFoundError:
                pass
            except ConflictError as e:
                # Objects written while draining; drain again
                if not desired.force_destroy or e.code != "BucketNotEmpty":
                    raise
                if self.clock() >= deadline:
                    raise DeadlineExceeded(f"deadline passed while deleting bucket {name}") from e
                continue
            break
        log_bucket_event(logger, name, "destroy", "Deleted", "Bucket deleted")

    # Outputs

    def outputs(self, identity: BucketIdentity, desired: DesiredConfiguration | None = None) -> BucketOutputs:
        """Derived attributes of a bucket (ARN, hostnames, hosted zone, website endpoint)."""
        website = desired.website if desired is not None else None
        return self.resolver.outputs(identity, website)
