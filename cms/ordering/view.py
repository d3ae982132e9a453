"""
Session-local mirror of an ordered collection.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Sequence

from cms.ordering.engine import array_move

RenderCallback = Callable[[list[dict]], None]


class LocalOrderedView:
    """
    Holds the latest listener snapshot plus any optimistic local moves.

    Snapshots replace the whole sequence; there is no merging and no rollback.
    A move that fails to persist is corrected by the next snapshot.
    """

    def __init__(self, records: Optional[Sequence[dict]] = None):
        self._records: list[dict] = [dict(r) for r in records or []]
        self._listeners: list[RenderCallback] = []
        self._lock = threading.Lock()

    @property
    def items(self) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def ids(self) -> list[str]:
        with self._lock:
            return [r.get("id") for r in self._records]

    def add_listener(self, callback: RenderCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _render(self) -> None:
        snapshot = self.items
        for callback in list(self._listeners):
            callback(snapshot)

    def on_snapshot(self, records: Sequence[dict]) -> None:
        with self._lock:
            self._records = [dict(r) for r in records]
        self._render()

    def reorder_locally(self, from_index: int, to_index: int) -> bool:
        """Moves one element in memory only; `order` fields are left alone."""
        with self._lock:
            size = len(self._records)
            if from_index == to_index:
                return False
            if not (0 <= from_index < size and 0 <= to_index < size):
                return False
            self._records = array_move(self._records, from_index, to_index)
        self._render()
        return True
