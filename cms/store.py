"""
Document store abstraction for Firestore and an in-memory implementation.

Both implementations deliver full, ascending-`order` snapshots to
subscribers and commit multi-document writes as a single atomic batch.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from shared.constants import ORDER_FIELD

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[dict]], None]
Unsubscribe = Callable[[], None]


class StoreError(Exception):
    """Raised when the backing store rejects a read or write."""


class DocumentNotFoundError(StoreError):
    pass


@dataclass(frozen=True)
class Scope:
    """
    An ordered collection.

    Flat scopes are a whole top-level collection. Nested scopes are the array
    field `array_field` inside document `parent_id` of `collection`.
    """

    collection: str
    parent_id: Optional[str] = None
    array_field: Optional[str] = None

    def __post_init__(self):
        if (self.parent_id is None) != (self.array_field is None):
            raise ValueError("Nested scopes need both parent_id and array_field")

    @property
    def is_nested(self) -> bool:
        return self.parent_id is not None

    def __str__(self) -> str:
        if self.is_nested:
            return f"{self.collection}/{self.parent_id}.{self.array_field}"
        return self.collection


@dataclass(frozen=True)
class BatchWrite:
    """A field patch against one document, applied as part of a batch."""

    collection: str
    doc_id: str
    fields: dict


class DocumentStore(Protocol):
    """Interface for document store access."""

    def subscribe(self, scope: Scope, callback: SnapshotCallback) -> Unsubscribe:
        ...

    def commit_batch(self, writes: list[BatchWrite]) -> None:
        ...

    def list_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict]:
        ...

    def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def add_document(self, collection: str, data: dict) -> str:
        ...

    def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    def delete_document(self, collection: str, doc_id: str) -> None:
        ...


def sort_by_order(records: list[dict]) -> list[dict]:
    """Stable ascending sort on `order`; records without one sort as 0."""
    return sorted(records, key=lambda record: record.get(ORDER_FIELD) or 0)


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self.commit_count = 0
        # Set to an exception instance to make the next commit_batch fail.
        self.fail_next_commit: Optional[Exception] = None
        # When set, snapshots queue up until flush(), the way Firestore
        # echoes writes back to listeners after the write returns.
        self.defer_notifications = False
        self._pending: list[tuple[SnapshotCallback, list[dict]]] = []
        self._subscribers: dict[int, tuple[Scope, SnapshotCallback]] = {}
        self._next_token = 0
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data and listeners (useful in tests)."""
        with self._lock:
            self.collections.clear()
            self._subscribers.clear()
            self.commit_count = 0
            self.fail_next_commit = None
            self.defer_notifications = False
            self._pending.clear()

    def _resolve(self, data: dict) -> dict:
        now = datetime.now(timezone.utc)
        return {
            key: now if value is SERVER_TIMESTAMP else copy.deepcopy(value)
            for key, value in data.items()
        }

    def _snapshot(self, scope: Scope) -> list[dict]:
        docs = self.collections.get(scope.collection, {})
        if scope.is_nested:
            parent = docs.get(scope.parent_id) or {}
            items = parent.get(scope.array_field) or []
            return sort_by_order(copy.deepcopy(items))
        # Firestore's orderBy drops documents that lack the field.
        return sort_by_order(
            [
                {"id": doc_id, **copy.deepcopy(data)}
                for doc_id, data in docs.items()
                if data.get(ORDER_FIELD) is not None
            ]
        )

    def _notify(self, collection: str, doc_ids: set[str]) -> None:
        with self._lock:
            deliveries = [
                (callback, self._snapshot(scope))
                for scope, callback in self._subscribers.values()
                if scope.collection == collection
                and (not scope.is_nested or scope.parent_id in doc_ids)
            ]
            if self.defer_notifications:
                self._pending.extend(deliveries)
                return
        for callback, records in deliveries:
            callback(records)

    def flush(self) -> int:
        """Delivers queued snapshots in commit order. Returns how many were sent."""
        with self._lock:
            deliveries, self._pending = self._pending, []
        for callback, records in deliveries:
            callback(records)
        return len(deliveries)

    def subscribe(self, scope: Scope, callback: SnapshotCallback) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = (scope, callback)
            initial = self._snapshot(scope)
        callback(initial)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def commit_batch(self, writes: list[BatchWrite]) -> None:
        with self._lock:
            if self.fail_next_commit is not None:
                error, self.fail_next_commit = self.fail_next_commit, None
                raise StoreError(f"Batch commit failed: {error}") from error
            for write in writes:
                if write.doc_id not in self.collections.get(write.collection, {}):
                    raise DocumentNotFoundError(
                        f"{write.collection}/{write.doc_id} does not exist"
                    )
            touched: dict[str, set[str]] = {}
            for write in writes:
                self.collections[write.collection][write.doc_id].update(
                    self._resolve(write.fields)
                )
                touched.setdefault(write.collection, set()).add(write.doc_id)
            self.commit_count += 1
        for collection, doc_ids in touched.items():
            self._notify(collection, doc_ids)

    def list_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict]:
        with self._lock:
            docs = [
                {"id": doc_id, **copy.deepcopy(data)}
                for doc_id, data in self.collections.get(collection, {}).items()
            ]
        for key, value in (filters or {}).items():
            docs = [doc for doc in docs if doc.get(key) == value]
        if order_by:
            docs = [doc for doc in docs if doc.get(order_by) is not None]
            docs.sort(key=lambda doc: doc[order_by])
        return docs

    def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            data = self.collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return {"id": doc_id, **copy.deepcopy(data)}

    def add_document(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self.collections.setdefault(collection, {})[doc_id] = self._resolve(data)
        self._notify(collection, {doc_id})
        return doc_id

    def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            existing = self.collections.get(collection, {}).get(doc_id)
            if existing is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")
            existing.update(self._resolve(data))
        self._notify(collection, {doc_id})

    def delete_document(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self.collections.get(collection, {}).pop(doc_id, None)
        self._notify(collection, {doc_id})


def _snapshot_to_record(snapshot) -> dict:
    return {"id": snapshot.id, **(snapshot.to_dict() or {})}


class FirestoreDocumentStore:
    """
    Firestore-backed implementation using a firebase-admin client.
    """

    def __init__(self, client):
        self.client = client

    def _collection(self, name: str):
        return self.client.collection(name)

    def subscribe(self, scope: Scope, callback: SnapshotCallback) -> Unsubscribe:
        if scope.is_nested:
            doc_ref = self._collection(scope.collection).document(scope.parent_id)

            def on_parent_snapshot(docs, changes, read_time):
                data = {}
                if docs and docs[0].exists:
                    data = docs[0].to_dict() or {}
                callback(sort_by_order(list(data.get(scope.array_field) or [])))

            watch = doc_ref.on_snapshot(on_parent_snapshot)
        else:
            query = self._collection(scope.collection).order_by(ORDER_FIELD)

            def on_query_snapshot(docs, changes, read_time):
                callback([_snapshot_to_record(doc) for doc in docs])

            watch = query.on_snapshot(on_query_snapshot)
        logger.info("Subscribed to %s", scope)
        return watch.unsubscribe

    def commit_batch(self, writes: list[BatchWrite]) -> None:
        batch = self.client.batch()
        for write in writes:
            batch.update(
                self._collection(write.collection).document(write.doc_id),
                write.fields,
            )
        try:
            batch.commit()
        except google_exceptions.NotFound as e:
            raise DocumentNotFoundError(str(e)) from e
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e

    def list_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict]:
        query = self._collection(collection)
        for key, value in (filters or {}).items():
            query = query.where(filter=FieldFilter(key, "==", value))
        if order_by:
            query = query.order_by(order_by)
        try:
            return [_snapshot_to_record(doc) for doc in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e

    def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            snapshot = self._collection(collection).document(doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e
        if not snapshot.exists:
            return None
        return _snapshot_to_record(snapshot)

    def add_document(self, collection: str, data: dict) -> str:
        try:
            _, doc_ref = self._collection(collection).add(data)
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e
        return doc_ref.id

    def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        try:
            self._collection(collection).document(doc_id).update(data)
        except google_exceptions.NotFound as e:
            raise DocumentNotFoundError(str(e)) from e
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e

    def delete_document(self, collection: str, doc_id: str) -> None:
        try:
            self._collection(collection).document(doc_id).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise StoreError(str(e)) from e
