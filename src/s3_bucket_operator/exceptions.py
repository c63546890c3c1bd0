"""Exceptions raised while reconciling a bucket."""

from __future__ import annotations

from typing import Optional


class BucketError(Exception):
    """Base exception for all bucket reconciliation errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """Initialize BucketError.

        Args:
            message: Error message
            status_code: HTTP status code if applicable
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(BucketError):
    """Raised when a bucket name or configuration shape is invalid.

    Never retried. Carries every violated rule, not just the first one.
    """

    def __init__(self, reasons: str | list[str]) -> None:
        """Initialize ValidationError.

        Args:
            reasons: One reason or the list of all violated rules
        """
        if isinstance(reasons, str):
            reasons = [reasons]
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons), status_code=400)


class PreconditionError(BucketError):
    """Raised when a configuration cannot apply to the bucket's current state."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=412)


class NotFoundError(BucketError):
    """Raised when the bucket or one of its sub-resources does not exist."""

    def __init__(self, message: str, code: str = "NoSuchBucket") -> None:
        """Initialize NotFoundError.

        Args:
            message: Error message
            code: Remote error code that triggered this error
        """
        super().__init__(message, status_code=404)
        self.code = code


class ConflictError(BucketError):
    """Raised on name collisions or when deleting a non-empty bucket."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, status_code=409)
        self.code = code


class TransientError(BucketError):
    """Raised for throttling and eventual-consistency failures.

    This is the only error class the retry helpers retry.
    """

    def __init__(self, message: str, code: str | None = None, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.code = code


class RemoteError(BucketError):
    """Raised for any other remote API failure."""

    def __init__(self, message: str, code: str | None = None, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.code = code


class EventualConsistencyTimeout(BucketError):
    """Raised when a bounded wait for remote consistency is exhausted."""

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} did not become consistent after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


class DeadlineExceeded(BucketError):
    """Raised when a caller-supplied deadline expires mid-operation."""

    pass


class InvalidStateTransition(BucketError):
    """Raised when the reconciler is asked to make an illegal state change."""

    pass


class PartialConfigurationFailure(BucketError):
    """Aggregate of every sub-resource that failed to converge."""

    def __init__(self, bucket: str, failures: dict[str, Exception]) -> None:
        """Initialize PartialConfigurationFailure.

        Args:
            bucket: Bucket name
            failures: Failed sub-resource names mapped to their causes
        """
        self.bucket = bucket
        self.failures = dict(failures)
        details = ", ".join(f"{name}: {error}" for name, error in sorted(self.failures.items()))
        super().__init__(f"failed to configure bucket {bucket}: {details}")
