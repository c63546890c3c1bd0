"""Shared utilities for handlers."""

from __future__ import annotations

import logging
from typing import Any, Callable

from kubernetes import client

from ..constants import API_GROUP, API_VERSION, PLURAL_BUCKETS
from ..services.aws.models import Reference

logger = logging.getLogger(__name__)


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client.

    Returns:
        CustomObjectsApi instance
    """
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.CustomObjectsApi()


def get_bucket_object(api: Any, name: str, namespace: str) -> dict[str, Any] | None:
    """Get a Bucket custom resource, or None if it does not exist.

    Raises:
        client.exceptions.ApiException: On any API error other than 404
    """
    try:
        return api.get_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURAL_BUCKETS,
            name=name,
        )
    except client.exceptions.ApiException as e:
        if e.status == 404:
            return None
        raise


def make_reference_lookup(api: Any, namespace: str) -> Callable[[Reference], str | None]:
    """Resolve references against the status of other Bucket resources.

    ``reference.resource`` names a Bucket as ``name`` or ``namespace/name``;
    ``reference.attribute`` is one of its status outputs (``arn``,
    ``regionalDomainName``, ...) or a top-level status field such as
    ``bucketName``. A value is unresolved (None) until that Bucket has
    reported it.
    """

    def lookup(reference: Reference) -> str | None:
        ref_namespace, _, ref_name = reference.resource.rpartition("/")
        obj = get_bucket_object(api, ref_name, ref_namespace or namespace)
        if obj is None:
            logger.debug(f"Referenced bucket {reference.resource} does not exist yet")
            return None
        status = obj.get("status") or {}
        value = (status.get("outputs") or {}).get(reference.attribute) or status.get(reference.attribute)
        return str(value) if value else None

    return lookup
