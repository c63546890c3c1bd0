"""Handler for Bucket CRD."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable

import kopf

from ..builders.bucket import create_desired_configuration_from_spec
from ..builders.provider import create_provider_from_spec, default_region
from ..config import ReconcilerSettings
from ..constants import (
    API_GROUP_VERSION,
    COND_CONFIGURATION_FAILED,
    COND_CREATION_FAILED,
    COND_VALIDATION_FAILED,
    DELETION_POLICY_DELETE,
    DELETION_POLICY_RETAIN,
    KIND_BUCKET,
)
from ..exceptions import (
    BucketError,
    ConflictError,
    EventualConsistencyTimeout,
    PartialConfigurationFailure,
    PreconditionError,
    ValidationError,
)
from ..reconcile.bucket import BucketReconciler, BucketState
from ..reconcile.replication import ReferenceLookup
from ..services.aws.models import DesiredConfiguration, Reference
from ..services.s3.base import S3Provider
from ..tracing import trace_span
from ..utils.conditions import (
    remove_condition,
    set_configuration_failed_condition,
    set_creation_failed_condition,
    set_ready_condition,
    set_validation_failed_condition,
)
from ..utils.errors import sanitize_exception
from ..utils.events import (
    emit_bucket_created,
    emit_bucket_deleted,
    emit_bucket_retained,
    emit_bucket_updated,
    emit_reconcile_failed,
)
from .base import BaseHandler
from .shared import get_k8s_client, make_reference_lookup

# Delay before kopf retries a failed reconcile
RETRY_DELAY_SECONDS = 60

# States a bucket can be left in by an interrupted reconcile
_INTERRUPTED_STATES = frozenset({BucketState.CREATING, BucketState.CONVERGING, BucketState.DELETING})


def state_from_status(status: dict[str, Any]) -> BucketState:
    """Reconciler state recorded in a Bucket status.

    A reconcile interrupted mid-way resumes from FAILED.
    """
    try:
        state = BucketState(status.get("state", BucketState.ABSENT.value))
    except ValueError:
        return BucketState.ABSENT
    if state in _INTERRUPTED_STATES:
        return BucketState.FAILED
    return state


class BucketHandler(BaseHandler):
    """Handler for Bucket resources."""

    def __init__(
        self,
        provider_factory: Callable[[dict[str, Any]], S3Provider] = create_provider_from_spec,
        lookup_factory: Callable[[str], ReferenceLookup] | None = None,
        settings: ReconcilerSettings | None = None,
    ):
        """Initialize bucket handler.

        Args:
            provider_factory: Builds the S3 provider for a Bucket spec
            lookup_factory: Builds the reference lookup for a namespace
            settings: Reconciler settings (read from the environment by default)
        """
        super().__init__(KIND_BUCKET)
        self.provider_factory = provider_factory
        self.lookup_factory = lookup_factory
        self.settings = settings or ReconcilerSettings.from_env()

    def _lookup(self, namespace: str) -> ReferenceLookup:
        if self.lookup_factory is not None:
            return self.lookup_factory(namespace)

        api = None

        # The Kubernetes client is only needed once a reference has to be resolved
        def lookup(reference: Reference) -> str | None:
            nonlocal api
            if api is None:
                api = get_k8s_client()
            return make_reference_lookup(api, namespace)(reference)

        return lookup

    def _reconciler(self, spec: dict[str, Any], region: str, status: dict[str, Any], namespace: str) -> BucketReconciler:
        provider = self.provider_factory({**spec, "region": region})
        return BucketReconciler(
            provider,
            self.settings,
            lookup=self._lookup(namespace),
            state=state_from_status(status),
        )

    def reconcile(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Reconcile Bucket resource."""
        namespace = meta.get("namespace", "default")
        generation = meta.get("generation")

        try:
            desired = create_desired_configuration_from_spec(spec, default_region(), status.get("bucketName"))
        except ValidationError as e:
            self.handle_validation_error(meta, status, patch, e, set_validation_failed_condition)

        with trace_span("reconcile_bucket", bucket=desired.name, attributes={"k8s.namespace": namespace}):
            reconciler = self._reconciler(spec, desired.region, status, namespace)
            conditions = remove_condition(status.get("conditions", []), COND_VALIDATION_FAILED)
            status_data = {"bucketName": desired.name, "region": desired.region}

            try:
                result = reconciler.ensure(desired)
            except (ValidationError, PreconditionError) as e:
                self.handle_validation_error(meta, status, patch, e, set_validation_failed_condition)
            except PartialConfigurationFailure as e:
                self.handle_reconciliation_error(
                    meta,
                    {"conditions": conditions},
                    patch,
                    e,
                    set_configuration_failed_condition,
                    status_data={
                        **status_data,
                        "state": reconciler.state.value,
                        "failedSubresources": sorted(e.failures),
                    },
                )
                raise kopf.TemporaryError(sanitize_exception(e), delay=RETRY_DELAY_SECONDS) from e
            except (ConflictError, EventualConsistencyTimeout) as e:
                self.handle_reconciliation_error(
                    meta,
                    {"conditions": conditions},
                    patch,
                    e,
                    set_creation_failed_condition,
                    status_data={**status_data, "state": reconciler.state.value},
                )
                raise kopf.TemporaryError(sanitize_exception(e), delay=RETRY_DELAY_SECONDS) from e
            except BucketError as e:
                self.handle_reconciliation_error(
                    meta,
                    {"conditions": conditions},
                    patch,
                    e,
                    status_data={**status_data, "state": reconciler.state.value},
                )
                raise kopf.TemporaryError(sanitize_exception(e), delay=RETRY_DELAY_SECONDS) from e

            if result.created:
                emit_bucket_created(meta, desired.name)
                self.log_info(meta, f"Created bucket {desired.name}", reason="BucketCreated", bucket_name=desired.name)
            elif result.changed:
                emit_bucket_updated(meta, desired.name, list(result.changed))
                self.log_info(
                    meta,
                    f"Drift corrected on bucket {desired.name}",
                    reason="DriftDetected",
                    bucket_name=desired.name,
                    changed=list(result.changed),
                )

            conditions = remove_condition(conditions, COND_CREATION_FAILED)
            conditions = remove_condition(conditions, COND_CONFIGURATION_FAILED)
            conditions = set_ready_condition(conditions, True, f"Bucket {desired.name} is ready", generation)

            self.update_resource_status(patch, meta, {
                **status_data,
                "state": result.state.value,
                "outputs": result.outputs.to_status(),
                "failedSubresources": [],
                "lastSyncTime": datetime.now(timezone.utc).isoformat(),
                "conditions": conditions,
            })

    def delete(
        self,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
    ) -> None:
        """Handle Bucket resource deletion."""
        bucket_name = status.get("bucketName") or spec.get("name")
        if not bucket_name:
            # Never created
            self.remove_finalizer(meta, patch)
            return

        deletion_policy = spec.get("deletionPolicy", DELETION_POLICY_RETAIN)
        self.log_info(
            meta,
            f"Bucket {bucket_name} is being deleted",
            event="deletion",
            reason="Deletion",
            bucket_name=bucket_name,
            deletion_policy=deletion_policy,
        )

        if deletion_policy != DELETION_POLICY_DELETE:
            self.log_info(meta, f"Retaining bucket {bucket_name} per deletionPolicy={deletion_policy}",
                          reason="BucketRetained", bucket_name=bucket_name)
            emit_bucket_retained(meta, bucket_name)
            self.remove_finalizer(meta, patch)
            return

        region = status.get("region") or spec.get("region") or default_region()
        desired = DesiredConfiguration(
            name=bucket_name,
            region=region,
            force_destroy=bool(spec.get("forceDestroy", False)),
        )
        reconciler = self._reconciler(spec, region, status, meta.get("namespace", "default"))

        try:
            reconciler.destroy(desired)
        except BucketError as e:
            error_msg = f"Failed to delete bucket {bucket_name}: {sanitize_exception(e)}"
            self.log_error(meta, error_msg, error=e, reason="DeletionFailed", bucket_name=bucket_name)
            emit_reconcile_failed(meta, error_msg)
            raise kopf.TemporaryError(error_msg, delay=RETRY_DELAY_SECONDS) from e

        emit_bucket_deleted(meta, bucket_name)
        self.log_info(meta, f"Deleted bucket {bucket_name}", reason="BucketDeleted", bucket_name=bucket_name)
        self.remove_finalizer(meta, patch)


# Global handler instance
_handler = BucketHandler()


@kopf.on.create(API_GROUP_VERSION, KIND_BUCKET)
@kopf.on.update(API_GROUP_VERSION, KIND_BUCKET)
@kopf.on.resume(API_GROUP_VERSION, KIND_BUCKET)
@kopf.timer(API_GROUP_VERSION, KIND_BUCKET, interval=int(os.getenv("DRIFT_CHECK_INTERVAL_SECONDS", "300")))
def handle_bucket(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle Bucket resource reconciliation."""
    _handler.ensure_finalizer(meta, patch)
    _handler.reconcile_with_metrics(meta, lambda: _handler.reconcile(spec, meta, status, patch))


@kopf.on.delete(API_GROUP_VERSION, KIND_BUCKET)
def handle_bucket_delete(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle Bucket resource deletion."""
    _handler.delete(spec, meta, status, patch)
