"""Prometheus metrics for the S3 Bucket Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "s3_bucket_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "s3_bucket_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)

# S3 operation metrics
bucket_operations_total = Counter(
    "s3_bucket_operator_bucket_operations_total",
    "Total number of S3 bucket operations",
    ["operation", "result"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "s3_bucket_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["resource_type"],
)

# Reconciler state machine
state_transitions_total = Counter(
    "s3_bucket_operator_state_transitions_total",
    "Total number of bucket state transitions",
    ["from_state", "to_state"],
)

# Retries of remote calls
retry_attempts_total = Counter(
    "s3_bucket_operator_retry_attempts_total",
    "Total number of retried remote calls",
    ["operation", "error_type"],
)

error_total = Counter(
    "s3_bucket_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)
