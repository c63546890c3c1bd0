"""Main entry point for the S3 Bucket Operator."""

from __future__ import annotations

import os
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from . import tracing
from .handlers import bucket  # noqa: F401


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    tracing.initialize_tracing()

    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    # Metrics and health check endpoints share one port
    metrics_port = int(os.getenv("METRICS_PORT", "8080"))
    health.start_health_server(metrics_port)
    health.mark_ready()


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop reporting ready while the operator shuts down."""
    health.mark_not_ready()
