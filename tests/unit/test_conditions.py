"""Unit tests for condition utilities."""

from __future__ import annotations

from s3_bucket_operator.utils.conditions import (
    remove_condition,
    set_configuration_failed_condition,
    set_creation_failed_condition,
    set_ready_condition,
    set_validation_failed_condition,
    update_condition,
)


class TestConditions:
    """Test condition utilities."""

    def test_update_condition_new(self) -> None:
        """Test adding a new condition."""
        result = update_condition([], "TestCondition", "True", "TestReason", "Test message", observed_generation=1)

        assert len(result) == 1
        assert result[0]["type"] == "TestCondition"
        assert result[0]["status"] == "True"
        assert result[0]["reason"] == "TestReason"
        assert result[0]["message"] == "Test message"
        assert result[0]["observedGeneration"] == 1

    def test_update_condition_existing(self) -> None:
        """Test updating an existing condition."""
        conditions = [
            {
                "type": "TestCondition",
                "status": "False",
                "reason": "OldReason",
                "message": "Old message",
                "lastTransitionTime": "2023-01-01T00:00:00Z",
            }
        ]

        result = update_condition(conditions, "TestCondition", "True", "NewReason", "New message", 2)

        assert len(result) == 1
        assert result[0]["status"] == "True"
        assert result[0]["reason"] == "NewReason"
        assert result[0]["lastTransitionTime"] != "2023-01-01T00:00:00Z"
        assert conditions[0]["status"] == "False"

    def test_transition_time_kept_without_status_change(self) -> None:
        """Test that an unchanged status keeps its transition time."""
        conditions = [
            {"type": "Ready", "status": "True", "reason": "Ready", "message": "old",
             "lastTransitionTime": "2023-01-01T00:00:00Z"}
        ]

        result = set_ready_condition(conditions, True, "still ready", observed_generation=3)

        assert result[0]["lastTransitionTime"] == "2023-01-01T00:00:00Z"
        assert result[0]["message"] == "still ready"

    def test_set_ready_condition(self) -> None:
        """Test setting ready condition."""
        result = set_ready_condition([], False, "Not yet", observed_generation=1)

        assert result[0]["type"] == "Ready"
        assert result[0]["status"] == "False"
        assert result[0]["reason"] == "NotReady"

    def test_failure_conditions(self) -> None:
        """Test the failure condition setters."""
        conditions = set_creation_failed_condition([], "taken", 1)
        conditions = set_configuration_failed_condition(conditions, "tags failed", 1)
        conditions = set_validation_failed_condition(conditions, "bad name", 1)

        assert [c["type"] for c in conditions] == ["CreationFailed", "ConfigurationFailed", "ValidationFailed"]
        assert all(c["status"] == "True" for c in conditions)
        assert conditions[1]["reason"] == "PartialConfigurationFailure"

    def test_remove_condition(self) -> None:
        """Test dropping a condition type."""
        conditions = set_validation_failed_condition(set_ready_condition([], False, "x"), "bad")

        result = remove_condition(conditions, "ValidationFailed")

        assert [c["type"] for c in result] == ["Ready"]
        assert len(conditions) == 2
