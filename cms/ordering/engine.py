"""
Reorder computations for user-sortable lists.

Every reorder rewrites the scope's `order` values to 0..n-1 so later appends
(`max(order) + 1`) can never collide with an existing value. Every record is
written: the `order` fields in a local view can be stale after an optimistic
move, so they are never used to skip a write.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from shared.constants import ORDER_FIELD


@dataclass(frozen=True)
class OrderUpdate:
    id: str
    order: int


@dataclass
class ReorderResult:
    from_index: int
    to_index: int
    records: list[dict]
    updates: list[OrderUpdate]

    def as_nested_list(self) -> list[dict]:
        """Full replacement array for a nested scope."""
        return [dict(record) for record in self.records]


def array_move(items: Sequence, from_index: int, to_index: int) -> list:
    """Removes the element at from_index and reinserts it at to_index."""
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def index_of(records: Sequence[dict], record_id: str) -> int:
    for i, record in enumerate(records):
        if record.get("id") == record_id:
            return i
    return -1


def reindex(records: Sequence[dict]) -> list[dict]:
    return [{**record, ORDER_FIELD: i} for i, record in enumerate(records)]


def next_order(records: Sequence[dict]) -> int:
    """Order value for a record appended to the scope."""
    if not records:
        return 0
    return max(record.get(ORDER_FIELD) or 0 for record in records) + 1


def compute_reorder(
    records: Sequence[dict], active_id: str, over_id: Optional[str]
) -> Optional[ReorderResult]:
    """
    Moves `active_id` to the position of `over_id`.

    Returns None when there is nothing to do: the drag was dropped outside a
    target, onto itself, or one of the ids is not in `records`.
    """
    if over_id is None or active_id == over_id:
        return None
    from_index = index_of(records, active_id)
    to_index = index_of(records, over_id)
    if from_index == -1 or to_index == -1:
        return None

    reordered = reindex(array_move(records, from_index, to_index))
    updates = [
        OrderUpdate(id=record["id"], order=record[ORDER_FIELD]) for record in reordered
    ]
    return ReorderResult(
        from_index=from_index,
        to_index=to_index,
        records=reordered,
        updates=updates,
    )
