"""Tests for base handler functionality."""

from __future__ import annotations

from unittest.mock import Mock, patch

import kopf
import pytest

from s3_bucket_operator.constants import FINALIZER
from s3_bucket_operator.exceptions import RemoteError, ValidationError
from s3_bucket_operator.handlers.base import BaseHandler
from s3_bucket_operator.utils.conditions import set_creation_failed_condition, set_validation_failed_condition

META = {"name": "test-resource", "namespace": "default", "uid": "uid-1", "generation": 3}


class TestFinalizers:
    """Test cases for finalizer handling."""

    def test_init(self):
        """Test handler initialization."""
        handler = BaseHandler(kind="Bucket")
        assert handler.kind == "Bucket"
        assert handler.logger is not None

    def test_ensure_finalizer_adds_when_missing(self):
        """Test that finalizer is added when not present."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").ensure_finalizer({"finalizers": ["other"]}, patch_obj)

        assert patch_obj.metadata["finalizers"] == ["other", FINALIZER]

    def test_ensure_finalizer_no_duplicate(self):
        """Test that nothing is patched when the finalizer is present."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").ensure_finalizer({"finalizers": [FINALIZER]}, patch_obj)

        assert "finalizers" not in patch_obj.metadata

    def test_remove_finalizer(self):
        """Test that only our finalizer is removed."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").remove_finalizer({"finalizers": [FINALIZER, "other"]}, patch_obj)

        assert patch_obj.metadata["finalizers"] == ["other"]

    def test_remove_finalizer_sets_none_when_empty(self):
        """Test that the last finalizer clears the list."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").remove_finalizer({"finalizers": [FINALIZER]}, patch_obj)

        assert patch_obj.metadata["finalizers"] is None


class TestErrorHandling:
    """Test cases for error recording."""

    @patch("s3_bucket_operator.handlers.base.emit_validate_failed")
    @patch("s3_bucket_operator.handlers.base.metrics")
    def test_handle_validation_error(self, mock_metrics, mock_emit):
        """Test that validation errors are permanent and recorded."""
        patch_obj = kopf.Patch()
        error = ValidationError(["bad name", "bad region"])

        with pytest.raises(kopf.PermanentError, match="bad name; bad region"):
            BaseHandler(kind="Bucket").handle_validation_error(
                META, {"conditions": []}, patch_obj, error, set_validation_failed_condition
            )

        mock_emit.assert_called_once_with(META, "bad name; bad region")
        mock_metrics.reconcile_total.labels.assert_called_with(kind="Bucket", result="failed")
        assert patch_obj.status["observedGeneration"] == 3
        (condition,) = patch_obj.status["conditions"]
        assert condition["type"] == "ValidationFailed"
        assert condition["observedGeneration"] == 3

    def test_handle_reconciliation_error(self):
        """Test that reconciliation errors are written to status."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").handle_reconciliation_error(
            META,
            {"conditions": []},
            patch_obj,
            RemoteError("denied"),
            set_creation_failed_condition,
            status_data={"state": "Failed"},
        )

        assert patch_obj.status["state"] == "Failed"
        assert patch_obj.status["conditions"][0]["type"] == "CreationFailed"
        assert patch_obj.status["conditions"][0]["message"] == "denied"

    def test_handle_reconciliation_error_without_condition(self):
        """Test that conditions are untouched without a setter."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").handle_reconciliation_error(META, {}, patch_obj, RemoteError("denied"))

        assert "conditions" not in patch_obj.status
        assert patch_obj.status["observedGeneration"] == 3


class TestReconcileWithMetrics:
    """Test cases for reconcile_with_metrics."""

    @patch("s3_bucket_operator.handlers.base.emit_reconcile_started")
    @patch("s3_bucket_operator.handlers.base.metrics")
    def test_success(self, mock_metrics, mock_emit_started):
        """Test successful reconciliation with metrics."""
        reconcile_fn = Mock()

        BaseHandler(kind="Bucket").reconcile_with_metrics(META, reconcile_fn)

        reconcile_fn.assert_called_once()
        mock_emit_started.assert_called_once_with(META)
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Bucket", result="started")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Bucket", result="success")
        assert mock_metrics.reconcile_duration_seconds.labels.called

    @patch("s3_bucket_operator.handlers.base.emit_reconcile_failed")
    @patch("s3_bucket_operator.handlers.base.emit_reconcile_started")
    @patch("s3_bucket_operator.handlers.base.metrics")
    def test_failure(self, mock_metrics, mock_emit_started, mock_emit_failed):
        """Test failed reconciliation with metrics and events."""

        def failing_fn():
            raise kopf.TemporaryError("Test error", delay=60)

        with pytest.raises(kopf.TemporaryError):
            BaseHandler(kind="Bucket").reconcile_with_metrics(META, failing_fn)

        mock_emit_failed.assert_called_once_with(META, "Reconciliation failed: Test error")
        mock_metrics.error_total.labels.assert_called_with(kind="Bucket", error_type="TemporaryError")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Bucket", result="error")

    @patch("s3_bucket_operator.handlers.base.emit_reconcile_failed")
    @patch("s3_bucket_operator.handlers.base.emit_reconcile_started")
    @patch("s3_bucket_operator.handlers.base.metrics")
    def test_permanent_error_is_not_counted_twice(self, mock_metrics, mock_emit_started, mock_emit_failed):
        """Test that permanent errors pass through untouched."""

        def failing_fn():
            raise kopf.PermanentError("bad spec")

        with pytest.raises(kopf.PermanentError):
            BaseHandler(kind="Bucket").reconcile_with_metrics(META, failing_fn)

        mock_emit_failed.assert_not_called()
        mock_metrics.error_total.labels.assert_not_called()
        assert mock_metrics.reconcile_duration_seconds.labels.called


class TestUpdateResourceStatus:
    """Test cases for update_resource_status."""

    def test_update_resource_status(self):
        """Test that status data and generation are written."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").update_resource_status(patch_obj, META, {"state": "Stable"})

        assert patch_obj.status["state"] == "Stable"
        assert patch_obj.status["observedGeneration"] == 3

    def test_update_resource_status_minimal(self):
        """Test that only the generation is written without data."""
        patch_obj = kopf.Patch()

        BaseHandler(kind="Bucket").update_resource_status(patch_obj, {})

        assert patch_obj.status == {"observedGeneration": 0}
