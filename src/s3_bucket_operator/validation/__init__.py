"""Validation of bucket names and configuration blocks."""

from .configuration import validate_encryption_rules, validate_website
from .naming import NameValidator, bucket_name_violations, validate_bucket_name

__all__ = [
    "NameValidator",
    "bucket_name_violations",
    "validate_bucket_name",
    "validate_encryption_rules",
    "validate_website",
]
