"""Content-addressed diffing of unordered block collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, TypeVar

from .hashing import BlockKey, CanonicalForm, canonicalize, hash_form

_B = TypeVar("_B")


@dataclass(frozen=True)
class SetPlan(Generic[_B]):
    """Partition of desired and observed blocks.

    Every list is sorted by block key, so two plans over the same content
    compare equal regardless of input order.
    """

    to_create: list[_B] = field(default_factory=list)
    to_update: list[_B] = field(default_factory=list)
    to_delete: list[_B] = field(default_factory=list)
    unchanged: list[_B] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing needs to be created, updated or deleted."""
        return not (self.to_create or self.to_update or self.to_delete)

    def converged(self) -> list[_B]:
        """Blocks present once the plan is applied."""
        return [*self.to_create, *self.to_update, *self.unchanged]

    def summary(self) -> dict[str, int]:
        return {
            "create": len(self.to_create),
            "update": len(self.to_update),
            "delete": len(self.to_delete),
            "unchanged": len(self.unchanged),
        }


def _index(
    blocks: Iterable[_B],
    key: Callable[[Any], str] | None,
) -> dict[str, tuple[CanonicalForm, _B]]:
    indexed: dict[str, tuple[CanonicalForm, _B]] = {}
    for block in blocks:
        form = canonicalize(block)
        block_id = key(block) if key is not None else hash_form(form)
        indexed.setdefault(block_id, (form, block))
    return indexed


def diff(
    desired: Iterable[_B],
    observed: Iterable[_B],
    key: Callable[[Any], str] | None = None,
) -> SetPlan[_B]:
    """Diff two unordered block collections.

    A key present on both sides with the same canonical form is unchanged;
    with a different form it is an in-place update (the desired block wins).
    Keys only on the desired side are created, keys only on the observed
    side are deleted.

    Args:
        desired: Blocks the caller wants
        observed: Blocks read from the remote bucket
        key: Identity function; defaults to the block's content key

    Returns:
        The plan
    """
    wanted = _index(desired, key)
    actual = _index(observed, key)

    to_create: list[_B] = []
    to_update: list[_B] = []
    unchanged: list[_B] = []
    for block_id in sorted(wanted):
        form, block = wanted[block_id]
        if block_id not in actual:
            to_create.append(block)
        elif actual[block_id][0] == form:
            unchanged.append(block)
        else:
            to_update.append(block)

    to_delete = [actual[block_id][1] for block_id in sorted(actual) if block_id not in wanted]

    return SetPlan(to_create=to_create, to_update=to_update, to_delete=to_delete, unchanged=unchanged)


class SetReconciler:
    """Diffs collections of nested blocks by content identity."""

    def __init__(self, key: Callable[[Any], BlockKey | str] | None = None) -> None:
        self.key = key

    def diff(self, desired: Iterable[_B], observed: Iterable[_B]) -> SetPlan[_B]:
        return diff(desired, observed, key=self.key)
