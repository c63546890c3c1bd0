"""Tests for bucket name validation."""

from __future__ import annotations

import pytest

from s3_bucket_operator.exceptions import ValidationError
from s3_bucket_operator.validation.naming import (
    NameValidator,
    bucket_name_violations,
    is_legacy_region,
    validate_bucket_name,
)


class TestDnsCompatibleNames:
    """Names outside the legacy default region must be DNS compatible."""

    @pytest.mark.parametrize(
        "name",
        ["foobar", "foo.bar", "foo.bar.baz", "1234", "foo-bar", "x" * 63],
    )
    def test_valid(self, name: str) -> None:
        validate_bucket_name(name, "us-west-2")

    @pytest.mark.parametrize(
        "name",
        ["foo..bar", "Foo.Bar", "192.168.0.1", "127.0.0.1", ".foo", "bar.", "foo_bar", "x" * 64, "ab"],
    )
    def test_invalid(self, name: str) -> None:
        with pytest.raises(ValidationError):
            validate_bucket_name(name, "us-west-2")

    def test_all_violations_are_reported(self) -> None:
        """Every broken rule is listed, not just the first."""
        with pytest.raises(ValidationError) as exc_info:
            validate_bucket_name(".Foo_", "eu-central-1")

        reasons = exc_info.value.reasons
        assert any("lowercase" in r for r in reasons)
        assert any("start with a period" in r for r in reasons)
        assert len(reasons) >= 2

    def test_label_must_not_start_with_hyphen(self) -> None:
        violations = bucket_name_violations("foo.-bar", "us-west-2")
        assert violations
        assert "label" in violations[0]


class TestLegacyRegionNames:
    """The legacy default region keeps the historical permissive rules."""

    @pytest.mark.parametrize(
        "name",
        ["foobar", "foo_bar", "127.0.0.1", "foo..bar", "foo_bar_baz", "foo.bar.baz", "Foo.Bar", "x" * 255],
    )
    def test_valid(self, name: str) -> None:
        validate_bucket_name(name, "us-east-1")

    @pytest.mark.parametrize("name", ["foo;bar", "x" * 256, "", "foo bar"])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(ValidationError):
            validate_bucket_name(name, "us-east-1")

    def test_semicolon_and_charset_reported_together(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_bucket_name("a; b", "us-east-1")
        assert len(exc_info.value.reasons) == 2
        assert any("';'" in reason for reason in exc_info.value.reasons)
        assert any("printable" in reason for reason in exc_info.value.reasons)

    def test_semicolon_alone_is_one_violation(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_bucket_name("foo;bar", "us-east-1")
        assert len(exc_info.value.reasons) == 1

    def test_empty_region_uses_legacy_rules(self) -> None:
        assert is_legacy_region("")
        validate_bucket_name("Foo_Bar", "")

    def test_other_regions_are_not_legacy(self) -> None:
        assert not is_legacy_region("us-east-2")


class TestNameValidator:
    def test_validate_delegates(self) -> None:
        validator = NameValidator()
        validator.validate("my-bucket", "eu-west-1")
        with pytest.raises(ValidationError):
            validator.validate("My_Bucket", "eu-west-1")
