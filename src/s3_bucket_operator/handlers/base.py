"""Base handler class with common functionality for CRD handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, NoReturn

import kopf

from .. import metrics
from ..constants import FINALIZER
from ..logging import log_resource_event
from ..utils.errors import sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_reconcile_started, emit_validate_failed


class BaseHandler:
    """Base class for CRD handlers with common functionality."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "Bucket")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message."""
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
        self._log(logging.ERROR, meta, message, event, reason, **log_data)

    def handle_validation_error(
        self,
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
        error: Exception,
        condition_fn: Callable[..., list[dict[str, Any]]],
    ) -> NoReturn:
        """Record a validation failure and stop retrying.

        Raises:
            kopf.PermanentError: Always; retrying cannot fix the resource spec
        """
        error_msg = sanitize_exception(error)
        self.log_error(meta, error_msg, error=error, reason="ValidationFailed")
        emit_validate_failed(meta, error_msg)
        metrics.reconcile_total.labels(kind=self.kind, result="failed").inc()
        conditions = condition_fn(status.get("conditions", []), error_msg, meta.get("generation"))
        patch.status.update({
            "conditions": conditions,
            "observedGeneration": meta.get("generation", 0),
        })
        raise kopf.PermanentError(error_msg)

    def handle_reconciliation_error(
        self,
        meta: dict[str, Any],
        status: dict[str, Any],
        patch: kopf.Patch,
        error: Exception,
        condition_fn: Callable[..., list[dict[str, Any]]] | None = None,
        status_data: dict[str, Any] | None = None,
    ) -> None:
        """Record a reconciliation failure in the status.

        Args:
            meta: Kubernetes resource metadata
            status: Resource status
            patch: Kopf patch object
            error: Exception that occurred
            condition_fn: Optional condition setter (conditions, message, generation)
            status_data: Additional status fields to write
        """
        sanitized_error = sanitize_exception(error)
        self.log_error(meta, f"Reconciliation failed: {sanitized_error}", error=error, reason="ReconciliationFailed")

        status_update = {
            "observedGeneration": meta.get("generation", 0),
            **(status_data or {}),
        }
        if condition_fn is not None:
            status_update["conditions"] = condition_fn(
                status.get("conditions", []), sanitized_error, meta.get("generation")
            )
        patch.status.update(status_update)

    def ensure_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Ensure finalizer is present in metadata."""
        finalizers = list(meta.get("finalizers", []))
        if FINALIZER not in finalizers:
            finalizers.append(FINALIZER)
            patch.metadata["finalizers"] = finalizers

    def remove_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Remove finalizer from metadata."""
        finalizers = list(meta.get("finalizers", []))
        if FINALIZER in finalizers:
            finalizers.remove(FINALIZER)
            patch.metadata["finalizers"] = finalizers if finalizers else None

    def reconcile_with_metrics(
        self,
        meta: dict[str, Any],
        reconcile_fn: Callable[[], None],
    ) -> None:
        """Execute reconciliation with metrics and error handling.

        Args:
            meta: Kubernetes resource metadata
            reconcile_fn: Function to execute for reconciliation
        """
        emit_reconcile_started(meta)
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            reconcile_fn()
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
        except kopf.PermanentError:
            # Already recorded by handle_validation_error
            raise
        except Exception as e:
            metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
            emit_reconcile_failed(meta, f"Reconciliation failed: {sanitize_exception(e)}")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)

    def update_resource_status(
        self,
        patch: kopf.Patch,
        meta: dict[str, Any],
        status_data: dict[str, Any] | None = None,
    ) -> None:
        """Update resource status with common fields."""
        patch.status.update({
            "observedGeneration": meta.get("generation", 0),
            **(status_data or {}),
        })
