from __future__ import annotations

from entity_importer.merge import merge_related, removed_related
from entity_importer.models import Cardinality, MergePolicy


class Item:
    def __init__(self, key, field=None):
        self.key = key
        self.field = field

    def __repr__(self):
        return f"Item({self.key!r})"


def by_key(item):
    return item.key


def test_to_one_takes_imported_instance_for_every_policy():
    old, new = Item(1), Item(2)
    for policy in MergePolicy:
        assert merge_related([old], [new], Cardinality.TO_ONE, policy, by_key) == [new]


def test_replace_keeps_exactly_the_imported_set():
    x, y, z = Item(1), Item(2), Item(3)

    final = merge_related([x, y], [y, z], Cardinality.TO_MANY, MergePolicy.REPLACE, by_key)

    assert final == [y, z]
    assert removed_related([x, y], final) == [x]


def test_merge_unions_by_primary_key():
    x, y, z = Item(1), Item(2), Item(3)
    y_updated = Item(2, field="new")

    final = merge_related(
        [x, y], [y_updated, z], Cardinality.TO_MANY, MergePolicy.MERGE, by_key
    )

    assert final == [x, y_updated, z]
    assert removed_related([x, y], final) == [y]


def test_merge_and_prune_drops_items_missing_from_import():
    x, y = Item(1), Item(2)

    final = merge_related(
        [x, y], [y], Cardinality.TO_MANY, MergePolicy.MERGE_AND_PRUNE, by_key
    )

    assert final == [y]
    assert removed_related([x, y], final) == [x]


def test_merge_without_identity_appends():
    a, b = Item(None), Item(None)

    final = merge_related([a], [b], Cardinality.TO_MANY, MergePolicy.MERGE)

    assert final == [a, b]


def test_duplicate_imports_keep_last_item_at_first_position():
    first, other, last = Item(5, "first"), Item(6), Item(5, "last")

    final = merge_related(
        [], [first, other, last], Cardinality.TO_MANY, MergePolicy.REPLACE, by_key
    )

    assert final == [last, other]
