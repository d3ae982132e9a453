"""
Wires the listener feed, the local view and batch persistence for one scope.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from cms.ordering.engine import compute_reorder
from cms.ordering.persistence import BatchPersistence
from cms.ordering.view import LocalOrderedView
from cms.store import DocumentStore, Scope

logger = logging.getLogger(__name__)


class ReorderSession:
    """
    Live, reorderable view of a single ordered collection.

    The view is disposable: it is rebuilt from every snapshot the store
    delivers and discarded on close().
    """

    def __init__(
        self,
        store: DocumentStore,
        scope: Scope,
        persistence: Optional[BatchPersistence] = None,
    ):
        self.store = store
        self.scope = scope
        self.view = LocalOrderedView()
        self.persistence = persistence or BatchPersistence(store)
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    def open(self) -> "ReorderSession":
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.scope, self.view.on_snapshot)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Closed reorder session for %s", self.scope)

    def drag_end(self, active_id: str, over_id: Optional[str]) -> bool:
        """
        Handles a drop. Returns True when the new order was persisted.

        The local view is updated before the write is issued, so readers see
        the new order immediately. A failed write leaves it in place until the
        next snapshot arrives.
        """
        if over_id is None or active_id == over_id:
            return False
        result = compute_reorder(self.view.items, active_id, over_id)
        if result is None:
            return False
        self.view.reorder_locally(result.from_index, result.to_index)
        return self.persistence.persist(self.scope, result)
