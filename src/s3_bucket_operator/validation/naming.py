"""Bucket name validation.

Buckets in the legacy default region keep the historical, permissive naming
rules; every other region requires DNS-compatible names.
"""

from __future__ import annotations

import re

from ..constants import LEGACY_DEFAULT_REGION
from ..exceptions import ValidationError

_DNS_CHARS = re.compile(r"^[0-9a-z.-]+$")
_IPV4_LITERAL = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")
_DNS_LABEL = re.compile(r"^[0-9a-z](?:[0-9a-z-]*[0-9a-z])?$")

# Any printable, non-whitespace ASCII character; ";" is checked separately
_LEGACY_CHARS = re.compile(r"^[\x21-\x7e]+$")


def is_legacy_region(region: str) -> bool:
    """Whether ``region`` uses the legacy naming rules (empty means the default region)."""
    return not region or region == LEGACY_DEFAULT_REGION


def bucket_name_violations(name: str, region: str) -> list[str]:
    """Every naming rule ``name`` violates in ``region``.

    Args:
        name: Proposed bucket name
        region: Target region

    Returns:
        List of human-readable violations, empty if the name is valid
    """
    if is_legacy_region(region):
        return _legacy_violations(name)
    return _dns_violations(name)


def _legacy_violations(name: str) -> list[str]:
    violations = []
    if not 1 <= len(name) <= 255:
        violations.append(f"{name!r} must contain from 1 to 255 characters")
    if ";" in name:
        violations.append(f"{name!r} must not contain ';'")
    if name and not _LEGACY_CHARS.match(name):
        violations.append(f"only printable non-whitespace ASCII characters allowed in {name!r}")
    return violations


def _dns_violations(name: str) -> list[str]:
    violations = []
    if not 3 <= len(name) <= 63:
        violations.append(f"{name!r} must contain from 3 to 63 characters")
    if not _DNS_CHARS.match(name):
        violations.append(f"only lowercase alphanumeric characters, hyphens and periods allowed in {name!r}")
    if _IPV4_LITERAL.match(name):
        violations.append(f"{name!r} must not be formatted as an IP address")
    if name.startswith("."):
        violations.append(f"{name!r} cannot start with a period")
    if name.endswith("."):
        violations.append(f"{name!r} cannot end with a period")
    if ".." in name:
        violations.append(f"{name!r} can only have one period between labels")

    # Empty labels are already reported by the period rules
    for label in name.split("."):
        if label and not _DNS_LABEL.match(label):
            violations.append(f"label {label!r} in {name!r} must start and end with a lowercase letter or digit")
    return violations


def validate_bucket_name(name: str, region: str) -> None:
    """Validate a bucket name for a region.

    Raises:
        ValidationError: Listing every violated rule
    """
    violations = bucket_name_violations(name, region)
    if violations:
        raise ValidationError(violations)


class NameValidator:
    """Validates proposed bucket names against the region's naming rules."""

    def validate(self, name: str, region: str) -> None:
        validate_bucket_name(name, region)
