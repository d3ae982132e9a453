"""
Atomic persistence of reorder results.
"""

from __future__ import annotations

import logging

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from cms.ordering.engine import ReorderResult
from cms.store import BatchWrite, DocumentStore, Scope, StoreError
from shared.constants import ORDER_FIELD, UPDATED_AT_FIELD

logger = logging.getLogger(__name__)


class BatchPersistence:
    """
    Writes a ReorderResult in one all-or-nothing store call.

    Flat scopes get one batch with an `order` patch for every record.
    Nested scopes get a single update of the parent document that replaces
    the whole array. Failures are logged and reported through the return
    value; they are never retried and never raised.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def persist(self, scope: Scope, result: ReorderResult) -> bool:
        if not result.updates:
            # Nothing to write; the scope is already in the requested order.
            return True
        if scope.is_nested:
            return self._persist_nested(scope, result)
        return self._persist_flat(scope, result)

    def _persist_flat(self, scope: Scope, result: ReorderResult) -> bool:
        writes = [
            BatchWrite(
                collection=scope.collection,
                doc_id=update.id,
                fields={ORDER_FIELD: update.order},
            )
            for update in result.updates
        ]
        try:
            self.store.commit_batch(writes)
        except StoreError:
            logger.exception("Error updating order for %s", scope)
            return False
        logger.info("Reordered %s (%d records updated)", scope, len(writes))
        return True

    def _persist_nested(self, scope: Scope, result: ReorderResult) -> bool:
        try:
            self.store.update_document(
                scope.collection,
                scope.parent_id,
                {
                    scope.array_field: result.as_nested_list(),
                    UPDATED_AT_FIELD: SERVER_TIMESTAMP,
                },
            )
        except StoreError:
            logger.exception("Error updating order for %s", scope)
            return False
        logger.info("Reordered %s (%d items rewritten)", scope, len(result.records))
        return True
