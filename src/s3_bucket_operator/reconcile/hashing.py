"""Content-derived identity for unordered configuration blocks.

Nested blocks such as CORS, lifecycle and replication rules have no stable
external identifier, so a block is identified by a fingerprint of its
canonical content. The canonical form:

* encodes dataclasses as mappings of their comparable fields, tagged with
  the block type so that different variants never collide;
* sorts mapping keys and the members of ``frozenset`` fields;
* keeps the order of tuples (ordered sequences);
* drops ``None``, ``""``, ``0``, ``False`` and empty containers, so an
  absent field and a field holding its default are the same content.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any, NewType

from ..exceptions import ValidationError
from ..services.aws.models import Reference, ResolvedValue

CanonicalForm = NewType("CanonicalForm", str)
BlockKey = NewType("BlockKey", str)

_TYPE_FIELD = "@type"


def _is_default(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return True
    if isinstance(value, (str, dict, list, tuple, frozenset, set)) and len(value) == 0:
        return True
    return False


def _encode(value: Any) -> Any:
    if isinstance(value, Reference):
        raise ValidationError(f"reference {value} must be resolved before comparison")
    if isinstance(value, ResolvedValue):
        return value.value
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        encoded = {_TYPE_FIELD: type(value).__name__}
        for f in dataclasses.fields(value):
            if not f.compare:
                continue
            item = _encode(getattr(value, f.name))
            if not _is_default(item):
                encoded[f.name] = item
        return encoded
    if isinstance(value, dict):
        encoded = {}
        for k, v in value.items():
            item = _encode(v)
            if not _is_default(item):
                encoded[str(k)] = item
        return encoded
    if isinstance(value, (frozenset, set)):
        members = [_encode(v) for v in value]
        return sorted(members, key=lambda m: json.dumps(m, sort_keys=True))
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def canonicalize(block: Any) -> CanonicalForm:
    """Deterministic, order-independent encoding of a block.

    Raises:
        ValidationError: If the block still holds an unresolved Reference
    """
    return CanonicalForm(json.dumps(_encode(block), sort_keys=True, separators=(",", ":")))


def hash_form(form: CanonicalForm) -> BlockKey:
    """Stable fingerprint of a canonical form."""
    return BlockKey(hashlib.sha256(form.encode("utf-8")).hexdigest())


def block_key(block: Any) -> BlockKey:
    """Fingerprint of a block's canonical content."""
    return hash_form(canonicalize(block))


class CanonicalBlockHasher:
    """Computes canonical forms and identity keys for nested blocks."""

    def canonicalize(self, block: Any) -> CanonicalForm:
        return canonicalize(block)

    def hash(self, form: CanonicalForm) -> BlockKey:
        return hash_form(form)

    def key(self, block: Any) -> BlockKey:
        return block_key(block)
