"""Shape checks for configuration blocks that the remote API would reject."""

from __future__ import annotations

from typing import Iterable

from ..exceptions import ValidationError
from ..services.aws.models import EncryptionRule, SSEAlgorithm, WebsiteConfig

REDIRECT_PROTOCOLS = frozenset({"", "http", "https"})


def website_violations(website: WebsiteConfig) -> list[str]:
    """Every rule a website configuration breaks."""
    violations = []
    if website.redirect_all_requests_to is not None:
        if website.index_document or website.error_document or website.routing_rules:
            violations.append(
                "website redirectAllRequestsTo cannot be combined with documents or routing rules"
            )
        if not website.redirect_all_requests_to.host_name:
            violations.append("website redirectAllRequestsTo requires a hostName")
        if website.redirect_all_requests_to.protocol not in REDIRECT_PROTOCOLS:
            violations.append(
                f"website redirect protocol {website.redirect_all_requests_to.protocol!r} must be http or https"
            )
    elif not website.index_document:
        violations.append("website requires an indexDocument or redirectAllRequestsTo")

    for position, rule in enumerate(website.routing_rules):
        if rule.redirect.replace_key_prefix_with and rule.redirect.replace_key_with:
            violations.append(
                f"website routing rule {position} cannot set both replaceKeyPrefixWith and replaceKeyWith"
            )
    return violations


def encryption_violations(rules: Iterable[EncryptionRule]) -> list[str]:
    """Every rule a set of default-encryption rules breaks."""
    violations = []
    for rule in rules:
        if rule.kms_master_key_id and rule.sse_algorithm is not SSEAlgorithm.KMS:
            violations.append(
                f"kmsMasterKeyId requires sseAlgorithm {SSEAlgorithm.KMS.value}, got {rule.sse_algorithm.value}"
            )
    return violations


def validate_website(website: WebsiteConfig | None) -> None:
    """Raises ValidationError if the website configuration is malformed."""
    if website is None:
        return
    violations = website_violations(website)
    if violations:
        raise ValidationError(violations)


def validate_encryption_rules(rules: Iterable[EncryptionRule]) -> None:
    """Raises ValidationError if any encryption rule is malformed."""
    violations = encryption_violations(rules)
    if violations:
        raise ValidationError(violations)
