import unittest
from datetime import datetime
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from cms.store import (
    BatchWrite,
    DocumentNotFoundError,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    Scope,
    StoreError,
    sort_by_order,
)


class ScopeTests(unittest.TestCase):
    def test_nested_scope_needs_both_parts(self):
        with self.assertRaises(ValueError):
            Scope("promptCategories", parent_id="cat1")
        self.assertTrue(Scope("promptCategories", "cat1", "options").is_nested)
        self.assertEqual(
            str(Scope("promptCategories", "cat1", "options")),
            "promptCategories/cat1.options",
        )

    def test_sort_by_order_is_stable_and_treats_missing_as_zero(self):
        records = [{"id": "a", "order": 1}, {"id": "b"}, {"id": "c", "order": 0}]
        self.assertEqual([r["id"] for r in sort_by_order(records)], ["b", "c", "a"])


class InMemoryDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.collections["categories"] = {
            "a": {"name": "A", "order": 1},
            "b": {"name": "B", "order": 0},
            "x": {"name": "No order"},
        }

    def test_subscribe_delivers_sorted_snapshot_without_unordered_docs(self):
        snapshots = []
        self.store.subscribe(Scope("categories"), snapshots.append)
        self.assertEqual([r["id"] for r in snapshots[0]], ["b", "a"])

    def test_commit_batch_is_all_or_nothing(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.commit_batch(
                [
                    BatchWrite("categories", "a", {"order": 5}),
                    BatchWrite("categories", "missing", {"order": 6}),
                ]
            )
        self.assertEqual(self.store.collections["categories"]["a"]["order"], 1)
        self.assertEqual(self.store.commit_count, 0)

    def test_commit_batch_notifies_once_per_collection(self):
        snapshots = []
        self.store.subscribe(Scope("categories"), snapshots.append)
        self.store.commit_batch(
            [
                BatchWrite("categories", "a", {"order": 0}),
                BatchWrite("categories", "b", {"order": 1}),
            ]
        )
        self.assertEqual(len(snapshots), 2)
        self.assertEqual([r["id"] for r in snapshots[-1]], ["a", "b"])

    def test_fail_next_commit(self):
        self.store.fail_next_commit = RuntimeError("boom")
        with self.assertRaises(StoreError):
            self.store.commit_batch([BatchWrite("categories", "a", {"order": 0})])
        self.store.commit_batch([BatchWrite("categories", "a", {"order": 0})])
        self.assertEqual(self.store.commit_count, 1)

    def test_deferred_notifications_wait_for_flush(self):
        snapshots = []
        self.store.subscribe(Scope("categories"), snapshots.append)
        self.store.defer_notifications = True

        self.store.commit_batch([BatchWrite("categories", "a", {"order": 0})])
        self.store.commit_batch([BatchWrite("categories", "b", {"order": 2})])
        self.assertEqual(len(snapshots), 1)

        self.assertEqual(self.store.flush(), 2)
        self.assertEqual([r["id"] for r in snapshots[1]], ["a", "b"])
        # Each queued snapshot reflects the store at its own commit.
        self.assertEqual(snapshots[1][1]["order"], 0)
        self.assertEqual(snapshots[2][1]["order"], 2)
        self.assertEqual(self.store.flush(), 0)

    def test_server_timestamp_is_resolved(self):
        doc_id = self.store.add_document("filters_feed", {"updatedAt": SERVER_TIMESTAMP})
        self.assertIsInstance(
            self.store.get_document("filters_feed", doc_id)["updatedAt"], datetime
        )

    def test_update_missing_document(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update_document("categories", "missing", {"name": "x"})

    def test_list_documents_filters_and_orders(self):
        self.store.collections["subcategories"] = {
            "s1": {"parentCategoryId": "a", "order": 2},
            "s2": {"parentCategoryId": "b", "order": 0},
            "s3": {"parentCategoryId": "a", "order": 1},
        }
        docs = self.store.list_documents(
            "subcategories", order_by="order", filters={"parentCategoryId": "a"}
        )
        self.assertEqual([d["id"] for d in docs], ["s3", "s1"])

    def test_nested_subscription_only_sees_its_parent(self):
        self.store.collections["promptCategories"] = {
            "p1": {"options": [{"id": "o1", "order": 0}]},
            "p2": {"options": []},
        }
        snapshots = []
        self.store.subscribe(Scope("promptCategories", "p1", "options"), snapshots.append)
        self.store.update_document("promptCategories", "p2", {"options": [{"id": "z"}]})
        self.assertEqual(len(snapshots), 1)
        self.store.update_document(
            "promptCategories", "p1", {"options": [{"id": "o2", "order": 0}]}
        )
        self.assertEqual(snapshots[-1], [{"id": "o2", "order": 0}])


class FirestoreDocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.store = FirestoreDocumentStore(self.client)

    def test_commit_batch_uses_one_batch(self):
        batch = self.client.batch.return_value
        self.store.commit_batch(
            [
                BatchWrite("categories", "a", {"order": 0}),
                BatchWrite("categories", "b", {"order": 1}),
            ]
        )
        self.assertEqual(batch.update.call_count, 2)
        batch.commit.assert_called_once_with()

    def test_commit_batch_maps_errors(self):
        batch = self.client.batch.return_value
        batch.commit.side_effect = google_exceptions.NotFound("gone")
        with self.assertRaises(DocumentNotFoundError):
            self.store.commit_batch([BatchWrite("categories", "a", {"order": 0})])

        batch.commit.side_effect = google_exceptions.ServiceUnavailable("down")
        with self.assertRaises(StoreError):
            self.store.commit_batch([BatchWrite("categories", "a", {"order": 0})])

    def test_flat_subscription_orders_by_order(self):
        query = self.client.collection.return_value.order_by.return_value
        received = []
        unsubscribe = self.store.subscribe(Scope("categories"), received.append)

        self.client.collection.return_value.order_by.assert_called_once_with("order")
        handler = query.on_snapshot.call_args[0][0]
        doc = MagicMock(id="a")
        doc.to_dict.return_value = {"order": 0}
        handler([doc], [], None)

        self.assertEqual(received, [[{"id": "a", "order": 0}]])
        self.assertIs(unsubscribe, query.on_snapshot.return_value.unsubscribe)

    def test_nested_subscription_sorts_array(self):
        doc_ref = self.client.collection.return_value.document.return_value
        received = []
        self.store.subscribe(Scope("promptCategories", "p1", "options"), received.append)

        handler = doc_ref.on_snapshot.call_args[0][0]
        parent = MagicMock(exists=True)
        parent.to_dict.return_value = {
            "options": [{"id": "o2", "order": 1}, {"id": "o1", "order": 0}]
        }
        handler([parent], [], None)

        self.assertEqual([o["id"] for o in received[0]], ["o1", "o2"])

    def test_get_missing_document(self):
        snapshot = self.client.collection.return_value.document.return_value.get.return_value
        snapshot.exists = False
        self.assertIsNone(self.store.get_document("categories", "a"))


if __name__ == "__main__":
    unittest.main()
