"""Reconcile a relationship's current related set with newly imported items."""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence

from .models import Cardinality, MergePolicy

Identity = Callable[[Any], Optional[Hashable]]


def _identity_key(item: Any, identity: Optional[Identity]) -> Hashable:
    key = identity(item) if identity is not None else None
    if key is None:
        return ("object", id(item))
    return ("key", key)


def _dedupe(items: Sequence[Any], identity: Optional[Identity]) -> List[Any]:
    """Drop repeated items, keeping the last occurrence at the first position."""
    positions: Dict[Hashable, int] = {}
    result: List[Any] = []
    for item in items:
        key = _identity_key(item, identity)
        if key in positions:
            result[positions[key]] = item
            continue
        positions[key] = len(result)
        result.append(item)
    return result


def merge_related(
    current: Sequence[Any],
    imported: Sequence[Any],
    cardinality: Cardinality,
    policy: MergePolicy,
    identity: Optional[Identity] = None,
) -> List[Any]:
    """Return the final related set for a relationship.

    ``identity`` maps an instance to its primary-key value; items without one
    are compared by object identity, which degrades ``Merge`` to appending.
    """
    if cardinality is Cardinality.TO_ONE:
        return list(imported[-1:])

    if policy is MergePolicy.MERGE:
        final = _dedupe(current, identity)
        positions = {
            _identity_key(item, identity): index for index, item in enumerate(final)
        }
        for item in _dedupe(imported, identity):
            key = _identity_key(item, identity)
            if key in positions:
                final[positions[key]] = item
            else:
                positions[key] = len(final)
                final.append(item)
        return final

    # Replace and MergeAndPrune both keep exactly the imported set.
    return _dedupe(imported, identity)


def removed_related(current: Sequence[Any], final: Sequence[Any]) -> List[Any]:
    """Items of ``current`` that are no longer part of ``final``."""
    kept = {id(item) for item in final}
    return [item for item in current if id(item) not in kept]
