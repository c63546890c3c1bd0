"""Utilities for managing Bucket status conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_CONFIGURATION_FAILED,
    COND_CREATION_FAILED,
    COND_READY,
    COND_VALIDATION_FAILED,
)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    The transition time is kept when the status does not change.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()
    updated = [dict(cond) for cond in conditions]

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }
    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    for idx, cond in enumerate(updated):
        if cond.get("type") == condition_type:
            if cond.get("status") == status:
                new_condition["lastTransitionTime"] = cond.get("lastTransitionTime", now)
            updated[idx] = new_condition
            return updated

    updated.append(new_condition)
    return updated


def remove_condition(conditions: list[dict[str, Any]], condition_type: str) -> list[dict[str, Any]]:
    """Drop a condition type from the list."""
    return [dict(cond) for cond in conditions if cond.get("type") != condition_type]


def set_ready_condition(
    conditions: list[dict[str, Any]],
    status: bool,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the Ready condition."""
    return update_condition(
        conditions,
        COND_READY,
        "True" if status else "False",
        "Ready" if status else "NotReady",
        message,
        observed_generation,
    )


def set_creation_failed_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the CreationFailed condition."""
    return update_condition(
        conditions,
        COND_CREATION_FAILED,
        "True",
        "CreationFailed",
        message,
        observed_generation,
    )


def set_configuration_failed_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the ConfigurationFailed condition (one or more sub-resources failed)."""
    return update_condition(
        conditions,
        COND_CONFIGURATION_FAILED,
        "True",
        "PartialConfigurationFailure",
        message,
        observed_generation,
    )


def set_validation_failed_condition(
    conditions: list[dict[str, Any]],
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the ValidationFailed condition."""
    return update_condition(
        conditions,
        COND_VALIDATION_FAILED,
        "True",
        "ValidationFailed",
        message,
        observed_generation,
    )
