"""Runtime settings for the S3 Bucket Operator."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcilerSettings:
    """Attempt and time bounds for every remote call site."""

    max_attempts: int = 5
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    existence_timeout: float = 120.0
    drain_timeout: float = 3600.0

    @classmethod
    def from_env(cls) -> "ReconcilerSettings":
        """Read settings from the environment.

        Environment Variables:
            S3_OPERATOR_MAX_ATTEMPTS: Attempt ceiling per remote call (default: 5)
            S3_OPERATOR_RETRY_BASE_DELAY: First backoff delay in seconds (default: 1.0)
            S3_OPERATOR_RETRY_MAX_DELAY: Backoff cap in seconds (default: 30.0)
            S3_OPERATOR_EXISTENCE_TIMEOUT: Wait budget after create in seconds (default: 120.0)
            S3_OPERATOR_DRAIN_TIMEOUT: Default drain deadline in seconds (default: 3600.0)
        """
        return cls(
            max_attempts=int(os.getenv("S3_OPERATOR_MAX_ATTEMPTS", "5")),
            retry_base_delay=float(os.getenv("S3_OPERATOR_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("S3_OPERATOR_RETRY_MAX_DELAY", "30.0")),
            existence_timeout=float(os.getenv("S3_OPERATOR_EXISTENCE_TIMEOUT", "120.0")),
            drain_timeout=float(os.getenv("S3_OPERATOR_DRAIN_TIMEOUT", "3600.0")),
        )
