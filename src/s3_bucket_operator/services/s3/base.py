"""Base S3 provider interface."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from ..aws.models import (
    AccelerationStatus,
    CorsRule,
    EncryptionRule,
    LifecycleRule,
    LoggingConfig,
    RequestPayer,
    VersioningMode,
    WebsiteConfig,
)


class S3Provider(Protocol):
    """Protocol defining the remote bucket operations the reconciler relies on.

    Implementations translate remote failures into the exception classes of
    ``s3_bucket_operator.exceptions``. Getters for an unconfigured
    sub-resource return its empty value instead of raising.
    """

    def bucket_exists(self, name: str) -> bool:
        """Check if a bucket exists."""
        ...

    def create_bucket(self, name: str, region: str, acl: str | None = None) -> None:
        """Create a bucket in a region."""
        ...

    def delete_bucket(self, name: str) -> None:
        """Delete an empty bucket."""
        ...

    def empty_bucket(
        self,
        name: str,
        deadline: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> int:
        """Delete every object version and delete marker; returns how many were removed."""
        ...

    def get_bucket_region(self, name: str) -> str:
        """Region the bucket lives in."""
        ...

    def get_bucket_acl(self, name: str) -> str | None:
        """Canned ACL matching the bucket's grants, if any."""
        ...

    def put_bucket_acl(self, name: str, acl: str) -> None:
        """Apply a canned ACL."""
        ...

    def get_bucket_policy(self, name: str) -> str | None:
        """Bucket policy document as JSON text."""
        ...

    def put_bucket_policy(self, name: str, policy: str) -> None:
        """Set bucket policy."""
        ...

    def delete_bucket_policy(self, name: str) -> None:
        """Delete bucket policy."""
        ...

    def get_bucket_cors(self, name: str) -> frozenset[CorsRule]:
        """Get bucket CORS rules."""
        ...

    def put_bucket_cors(self, name: str, rules: frozenset[CorsRule]) -> None:
        """Replace bucket CORS rules."""
        ...

    def delete_bucket_cors(self, name: str) -> None:
        """Delete bucket CORS configuration."""
        ...

    def get_bucket_website(self, name: str) -> WebsiteConfig | None:
        """Get bucket website configuration."""
        ...

    def put_bucket_website(self, name: str, website: WebsiteConfig) -> None:
        """Set bucket website configuration."""
        ...

    def delete_bucket_website(self, name: str) -> None:
        """Delete bucket website configuration."""
        ...

    def get_bucket_versioning(self, name: str) -> VersioningMode:
        """Get bucket versioning status."""
        ...

    def put_bucket_versioning(self, name: str, mode: VersioningMode) -> None:
        """Set bucket versioning status."""
        ...

    def get_bucket_accelerate(self, name: str) -> AccelerationStatus | None:
        """Get transfer acceleration status."""
        ...

    def put_bucket_accelerate(self, name: str, status: AccelerationStatus) -> None:
        """Set transfer acceleration status."""
        ...

    def get_bucket_request_payment(self, name: str) -> RequestPayer:
        """Get who pays for requests."""
        ...

    def put_bucket_request_payment(self, name: str, payer: RequestPayer) -> None:
        """Set who pays for requests."""
        ...

    def get_bucket_logging(self, name: str) -> LoggingConfig | None:
        """Get access logging target."""
        ...

    def put_bucket_logging(self, name: str, logging_config: LoggingConfig | None) -> None:
        """Set access logging target; None disables logging."""
        ...

    def get_bucket_lifecycle(self, name: str) -> frozenset[LifecycleRule]:
        """Get bucket lifecycle rules."""
        ...

    def put_bucket_lifecycle(self, name: str, rules: frozenset[LifecycleRule]) -> None:
        """Replace bucket lifecycle rules."""
        ...

    def delete_bucket_lifecycle(self, name: str) -> None:
        """Delete bucket lifecycle configuration."""
        ...

    def get_bucket_replication(self, name: str) -> dict[str, Any] | None:
        """Raw replication configuration, or None."""
        ...

    def put_bucket_replication(self, name: str, configuration: dict[str, Any]) -> None:
        """Set replication configuration (already in API shape)."""
        ...

    def delete_bucket_replication(self, name: str) -> None:
        """Delete replication configuration."""
        ...

    def get_bucket_encryption(self, name: str) -> frozenset[EncryptionRule]:
        """Get default encryption rules."""
        ...

    def put_bucket_encryption(self, name: str, rules: frozenset[EncryptionRule]) -> None:
        """Replace default encryption rules."""
        ...

    def delete_bucket_encryption(self, name: str) -> None:
        """Delete default encryption configuration."""
        ...

    def get_bucket_tags(self, name: str) -> dict[str, str]:
        """Get bucket tags."""
        ...

    def put_bucket_tags(self, name: str, tags: dict[str, str]) -> None:
        """Replace bucket tags."""
        ...

    def delete_bucket_tags(self, name: str) -> None:
        """Delete all bucket tags."""
        ...
