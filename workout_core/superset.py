"""Helpers for exercises grouped into supersets.

Any object with a ``superset_group_id`` attribute works, so the same
queries serve live session exercises and template exercises.
"""

from __future__ import annotations

from typing import List, Sequence, Set


def indices(items: Sequence, superset_id: str) -> List[int]:
    """Return the positions of ``items`` belonging to ``superset_id``."""
    return [i for i, item in enumerate(items) if item.superset_group_id == superset_id]


def position(item_index: int, items: Sequence, superset_id: str) -> int | None:
    """Return the 0-based position of ``item_index`` inside its superset."""
    members = indices(items, superset_id)
    if item_index not in members:
        return None
    return members.index(item_index)


def is_last_in_superset(item_index: int, items: Sequence, superset_id: str) -> bool:
    members = indices(items, superset_id)
    return bool(members) and members[-1] == item_index


def superset_count(items: Sequence, superset_id: str) -> int:
    return len(indices(items, superset_id))


def grouped(items: Sequence) -> List[list]:
    """Group ``items`` by superset keeping first-appearance order.

    Items outside a superset come back as single-item groups.
    """

    groups: List[list] = []
    seen: Set[str] = set()
    for item in items:
        superset_id = item.superset_group_id
        if superset_id is None:
            groups.append([item])
        elif superset_id not in seen:
            seen.add(superset_id)
            groups.append([other for other in items if other.superset_group_id == superset_id])
    return groups


def orphaned_superset_ids(items: Sequence) -> Set[str]:
    """Return superset ids that have fewer than two members."""

    counts: dict[str, int] = {}
    for item in items:
        if item.superset_group_id is not None:
            counts[item.superset_group_id] = counts.get(item.superset_group_id, 0) + 1
    return {key for key, count in counts.items() if count < 2}
