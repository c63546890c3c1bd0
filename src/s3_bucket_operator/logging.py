"""Structured logging configuration for the S3 Bucket Operator."""

import json
import logging
import os
import sys
from typing import Any

CONTROLLER_NAME = "s3-bucket-operator"


def setup_structured_logging() -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_bucket_event(
    logger: logging.Logger,
    bucket: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured bucket reconciliation event."""
    log_data = {
        "controller": CONTROLLER_NAME,
        "bucket": bucket,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str))


def log_resource_event(
    logger: logging.Logger,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured custom resource event."""
    log_data = {
        "controller": CONTROLLER_NAME,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Remove secret fields from log data."""
    secret_fields = {"access_key", "secret_key", "session_token", "password"}
    sanitized = log_data.copy()
    for field in secret_fields:
        if field in sanitized:
            sanitized[field] = "***REDACTED***"
    return sanitized
