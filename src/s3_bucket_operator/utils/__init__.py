"""Utility functions for the S3 Bucket Operator."""

from .conditions import (
    remove_condition,
    set_configuration_failed_condition,
    set_creation_failed_condition,
    set_ready_condition,
    set_validation_failed_condition,
    update_condition,
)
from .errors import sanitize_error_message, sanitize_exception
from .events import emit_event
from .retry import RetryPolicy, retry_call, wait_until

__all__ = [
    "update_condition",
    "remove_condition",
    "set_ready_condition",
    "set_creation_failed_condition",
    "set_configuration_failed_condition",
    "set_validation_failed_condition",
    "emit_event",
    "sanitize_error_message",
    "sanitize_exception",
    "RetryPolicy",
    "retry_call",
    "wait_until",
]
