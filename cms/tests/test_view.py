import unittest

from cms.ordering import LocalOrderedView


class LocalOrderedViewTests(unittest.TestCase):
    def setUp(self):
        self.view = LocalOrderedView()
        self.rendered = []
        self.view.add_listener(self.rendered.append)
        self.view.on_snapshot(
            [{"id": "A", "order": 0}, {"id": "B", "order": 1}, {"id": "C", "order": 2}]
        )

    def test_snapshot_replaces_contents(self):
        self.view.on_snapshot([{"id": "X", "order": 0}])
        self.assertEqual(self.view.ids(), ["X"])
        self.assertEqual(len(self.rendered), 2)

    def test_reorder_locally_moves_without_touching_order(self):
        self.assertTrue(self.view.reorder_locally(0, 2))
        self.assertEqual(self.view.ids(), ["B", "C", "A"])
        self.assertEqual([r["order"] for r in self.view.items], [1, 2, 0])
        self.assertEqual([r["id"] for r in self.rendered[-1]], ["B", "C", "A"])

    def test_reorder_locally_ignores_invalid_moves(self):
        self.assertFalse(self.view.reorder_locally(1, 1))
        self.assertFalse(self.view.reorder_locally(0, 3))
        self.assertFalse(self.view.reorder_locally(-1, 0))
        self.assertEqual(self.view.ids(), ["A", "B", "C"])
        self.assertEqual(len(self.rendered), 1)

    def test_items_are_copies(self):
        self.view.items[0]["order"] = 99
        self.assertEqual(self.view.items[0]["order"], 0)

    def test_listener_can_be_removed(self):
        remove = self.view.add_listener(lambda records: self.fail("called"))
        remove()
        self.view.on_snapshot([])
        self.assertEqual(len(self.view), 0)


if __name__ == "__main__":
    unittest.main()
