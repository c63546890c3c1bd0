"""Reconciliation engine: content hashing, set diffing, replication normalization and the bucket state machine."""

from .bucket import BucketReconciler, BucketState, ReconcileResult
from .hashing import CanonicalBlockHasher, block_key, canonicalize
from .replication import ReplicationNormalizer, ReplicationPlan
from .sets import SetPlan, SetReconciler, diff

__all__ = [
    "BucketReconciler",
    "BucketState",
    "ReconcileResult",
    "CanonicalBlockHasher",
    "block_key",
    "canonicalize",
    "ReplicationNormalizer",
    "ReplicationPlan",
    "SetPlan",
    "SetReconciler",
    "diff",
]
