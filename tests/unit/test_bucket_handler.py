"""Tests for the Bucket handler."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import kopf
import pytest

from s3_bucket_operator.constants import FINALIZER
from s3_bucket_operator.exceptions import ConflictError, RemoteError
from s3_bucket_operator.handlers.bucket import BucketHandler, handle_bucket, handle_bucket_delete, state_from_status
from s3_bucket_operator.reconcile.bucket import BucketState
from s3_bucket_operator.services.aws.models import Reference


def _meta(**extra) -> dict:
    return {"name": "my-bucket-cr", "namespace": "default", "uid": "uid-1", "generation": 2, **extra}


def _conditions(patch_obj: kopf.Patch) -> dict:
    return {c["type"]: c for c in patch_obj.status["conditions"]}


@pytest.fixture
def handler(fake_provider, settings):
    specs = []

    def provider_factory(spec):
        specs.append(spec)
        return fake_provider

    bucket_handler = BucketHandler(provider_factory=provider_factory, lookup_factory=lambda ns: {}, settings=settings)
    bucket_handler.provider_specs = specs
    return bucket_handler


class TestStateFromStatus:
    """Test reconciler state recovery from status."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ({}, BucketState.ABSENT),
            ({"state": "Stable"}, BucketState.STABLE),
            ({"state": "Failed"}, BucketState.FAILED),
            ({"state": "Creating"}, BucketState.FAILED),
            ({"state": "Deleting"}, BucketState.FAILED),
            ({"state": "bogus"}, BucketState.ABSENT),
        ],
    )
    def test_state_from_status(self, status, expected):
        """Test that interrupted states resume as failed."""
        assert state_from_status(status) is expected


@patch("s3_bucket_operator.utils.events.kopf.event")
class TestReconcile:
    """Test cases for BucketHandler.reconcile."""

    def test_creates_bucket(self, mock_event, handler, fake_provider):
        """Test a first reconcile."""
        patch_obj = kopf.Patch()
        spec = {"name": "my-bucket", "region": "us-west-2", "tags": {"env": "prod"}}

        handler.reconcile(spec, _meta(), {}, patch_obj)

        assert fake_provider.buckets["my-bucket"]["tags"] == {"env": "prod"}
        assert patch_obj.status["bucketName"] == "my-bucket"
        assert patch_obj.status["region"] == "us-west-2"
        assert patch_obj.status["state"] == "Stable"
        assert patch_obj.status["failedSubresources"] == []
        assert patch_obj.status["outputs"]["regionalDomainName"] == "my-bucket.s3.us-west-2.amazonaws.com"
        assert patch_obj.status["observedGeneration"] == 2
        assert _conditions(patch_obj)["Ready"]["status"] == "True"
        assert handler.provider_specs[0]["region"] == "us-west-2"
        reasons = [c.kwargs["reason"] for c in mock_event.call_args_list]
        assert "BucketCreated" in reasons

    def test_drift_is_reported(self, mock_event, handler, fake_provider):
        """Test that corrected drift emits an update event."""
        fake_provider.add_bucket("my-bucket", region="us-west-2", tags={"env": "dev"})
        patch_obj = kopf.Patch()

        handler.reconcile(
            {"name": "my-bucket", "region": "us-west-2", "tags": {"env": "prod"}},
            _meta(),
            {"state": "Stable", "conditions": [{"type": "ConfigurationFailed", "status": "True"}]},
            patch_obj,
        )

        mock_event.assert_called_once_with(
            _meta(), reason="BucketUpdated", message="Bucket my-bucket updated: tags", type="Normal"
        )
        assert set(_conditions(patch_obj)) == {"Ready"}

    def test_generated_name_is_reused(self, mock_event, handler, fake_provider):
        """Test that a stored generated name is kept."""
        patch_obj = kopf.Patch()

        handler.reconcile({"namePrefix": "logs-"}, _meta(), {"bucketName": "logs-0123456789"}, patch_obj)

        assert "logs-0123456789" in fake_provider.buckets
        assert patch_obj.status["bucketName"] == "logs-0123456789"

    def test_invalid_spec_is_permanent(self, mock_event, handler, fake_provider):
        """Test that a malformed spec stops retries."""
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.PermanentError, match="mutually exclusive"):
            handler.reconcile({"name": "a", "namePrefix": "b"}, _meta(), {}, patch_obj)

        assert _conditions(patch_obj)["ValidationFailed"]["status"] == "True"
        assert fake_provider.calls == []

    def test_invalid_name_is_permanent(self, mock_event, handler, fake_provider):
        """Test that an invalid bucket name never reaches the provider."""
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.PermanentError):
            handler.reconcile({"name": "Bad_Name", "region": "us-west-2"}, _meta(), {}, patch_obj)

        assert fake_provider.calls == []

    def test_replication_without_versioning_is_permanent(self, mock_event, handler):
        """Test the replication precondition."""
        spec = {
            "name": "my-bucket",
            "replication": {"role": "r", "rules": [{"status": "Enabled", "destination": {"bucket": "d"}}]},
        }

        with pytest.raises(kopf.PermanentError, match="versioning must be enabled"):
            handler.reconcile(spec, _meta(), {}, kopf.Patch())

    def test_partial_failure(self, mock_event, handler, fake_provider):
        """Test that failed sub-resources are reported and retried."""
        fake_provider.failures["put_bucket_tags"] = RemoteError("denied")
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile({"name": "my-bucket", "tags": {"env": "prod"}}, _meta(), {}, patch_obj)

        assert patch_obj.status["failedSubresources"] == ["tags"]
        assert patch_obj.status["state"] == "Failed"
        assert _conditions(patch_obj)["ConfigurationFailed"]["reason"] == "PartialConfigurationFailure"

    def test_name_conflict(self, mock_event, handler, fake_provider):
        """Test that a taken name sets the creation failed condition."""
        fake_provider.failures["create_bucket"] = ConflictError("taken", code="BucketAlreadyExists")
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile({"name": "my-bucket"}, _meta(), {}, patch_obj)

        assert _conditions(patch_obj)["CreationFailed"]["message"] == "taken"

    def test_bucket_owned_elsewhere_is_a_creation_failure(self, mock_event, handler, fake_provider):
        """Test that a name held by another account sets the creation failed condition."""
        fake_provider.failures["bucket_exists"] = ConflictError(
            "bucket my-bucket is owned by another account", code="BucketAlreadyExists"
        )
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile({"name": "my-bucket"}, _meta(), {}, patch_obj)

        assert "another account" in _conditions(patch_obj)["CreationFailed"]["message"]
        assert fake_provider.called("create_bucket") == []

    def test_other_errors_are_temporary(self, mock_event, handler, fake_provider):
        """Test that remote failures are retried without a specific condition."""
        fake_provider.failures["bucket_exists"] = RemoteError("denied")
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError):
            handler.reconcile({"name": "my-bucket"}, _meta(), {}, patch_obj)

        assert patch_obj.status["state"] == "Absent"


@patch("s3_bucket_operator.utils.events.kopf.event")
class TestDelete:
    """Test cases for BucketHandler.delete."""

    def test_retain_by_default(self, mock_event, handler, fake_provider):
        """Test that buckets are retained unless deletion is requested."""
        fake_provider.add_bucket("my-bucket")
        patch_obj = kopf.Patch()

        handler.delete({"name": "my-bucket"}, _meta(finalizers=[FINALIZER]), {"bucketName": "my-bucket"}, patch_obj)

        assert "my-bucket" in fake_provider.buckets
        assert patch_obj.metadata["finalizers"] is None
        assert mock_event.call_args.kwargs["reason"] == "BucketRetained"

    def test_delete_policy(self, mock_event, handler, fake_provider):
        """Test deleting the bucket."""
        fake_provider.add_bucket("my-bucket")
        fake_provider.objects["my-bucket"] = [{"Key": "a", "VersionId": "1"}]
        patch_obj = kopf.Patch()
        spec = {"name": "my-bucket", "deletionPolicy": "Delete", "forceDestroy": True}

        handler.delete(spec, _meta(finalizers=[FINALIZER]), {"bucketName": "my-bucket", "state": "Stable"}, patch_obj)

        assert "my-bucket" not in fake_provider.buckets
        assert patch_obj.metadata["finalizers"] is None
        assert mock_event.call_args.kwargs["reason"] == "BucketDeleted"

    def test_delete_failure_keeps_finalizer(self, mock_event, handler, fake_provider):
        """Test that a failed delete is retried."""
        fake_provider.add_bucket("my-bucket")
        fake_provider.objects["my-bucket"] = [{"Key": "a", "VersionId": "1"}]
        patch_obj = kopf.Patch()

        with pytest.raises(kopf.TemporaryError, match="Failed to delete bucket my-bucket"):
            handler.delete(
                {"name": "my-bucket", "deletionPolicy": "Delete"},
                _meta(finalizers=[FINALIZER]),
                {"bucketName": "my-bucket"},
                patch_obj,
            )

        assert "finalizers" not in patch_obj.metadata
        assert mock_event.call_args.kwargs["reason"] == "ReconcileFailed"

    def test_never_created(self, mock_event, handler, fake_provider):
        """Test that a resource without a bucket just releases its finalizer."""
        patch_obj = kopf.Patch()

        handler.delete({"namePrefix": "logs-"}, _meta(finalizers=[FINALIZER]), {}, patch_obj)

        assert patch_obj.metadata["finalizers"] is None
        assert fake_provider.calls == []


class TestReferenceLookup:
    """Test cases for the default reference lookup."""

    @patch("s3_bucket_operator.handlers.bucket.make_reference_lookup")
    @patch("s3_bucket_operator.handlers.bucket.get_k8s_client")
    def test_client_is_created_lazily(self, mock_get_client, mock_make_lookup, settings):
        """Test that the Kubernetes client is only built when needed."""
        mock_make_lookup.return_value = MagicMock(return_value="arn:aws:s3:::dest")
        lookup = BucketHandler(settings=settings)._lookup("default")

        mock_get_client.assert_not_called()
        assert lookup(Reference("dest", "arn")) == "arn:aws:s3:::dest"
        assert lookup(Reference("dest", "arn")) == "arn:aws:s3:::dest"
        mock_get_client.assert_called_once()
        mock_make_lookup.assert_called_with(mock_get_client.return_value, "default")


class TestKopfHandlers:
    """Test cases for the registered kopf handlers."""

    @patch("s3_bucket_operator.handlers.bucket._handler")
    def test_handle_bucket(self, mock_handler):
        """Test that reconciliation adds the finalizer and records metrics."""
        patch_obj = kopf.Patch()

        handle_bucket(spec={}, meta=_meta(), status={}, patch=patch_obj)

        mock_handler.ensure_finalizer.assert_called_once_with(_meta(), patch_obj)
        mock_handler.reconcile_with_metrics.assert_called_once()

    @patch("s3_bucket_operator.handlers.bucket._handler")
    def test_handle_bucket_delete(self, mock_handler):
        """Test that deletion is delegated."""
        patch_obj = kopf.Patch()

        handle_bucket_delete(spec={}, meta=_meta(), status={}, patch=patch_obj)

        mock_handler.delete.assert_called_once_with({}, _meta(), {}, patch_obj)
