import unittest

from cms import content
from cms.content import NotFoundError, ValidationError
from cms.storage import InMemoryStorageClient
from cms.store import InMemoryDocumentStore
from shared.types import (
    Category,
    Filter,
    OnboardingSlider,
    PromptCategory,
    PromptOption,
    Subcategory,
)


class CategoryServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_create_appends_after_highest_order(self):
        first = content.create_category(self.store, Category(name="Retro Film"))
        self.store.update_document("categories", first, {"order": 7})
        second = content.create_category(self.store, Category(name="Anime"))

        doc = self.store.get_document("categories", second)
        self.assertEqual(doc["order"], 8)
        self.assertEqual(doc["slug"], "anime")
        self.assertIn("updatedAt", doc)
        self.assertNotIn("id", self.store.collections["categories"][second])

    def test_first_record_gets_order_zero(self):
        doc_id = content.create_category(self.store, Category(name="Retro  Film Looks!"))
        doc = self.store.get_document("categories", doc_id)
        self.assertEqual(doc["order"], 0)
        self.assertEqual(doc["slug"], "retro-film-looks")

    def test_update_without_order_keeps_position(self):
        doc_id = content.create_category(self.store, Category(name="A", order=3))
        content.update_category(self.store, doc_id, Category(name="B"))
        doc = self.store.get_document("categories", doc_id)
        self.assertEqual((doc["name"], doc["order"]), ("B", 3))

    def test_update_and_delete_missing(self):
        with self.assertRaises(NotFoundError):
            content.update_category(self.store, "nope", Category(name="B"))
        with self.assertRaises(NotFoundError):
            content.delete_category(self.store, "nope")


class SubcategoryServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.parent = content.create_category(
            self.store, Category(name="Portraits", cover_image="https://img/p.jpg")
        )

    def test_create_requires_parent(self):
        with self.assertRaises(ValidationError):
            content.create_subcategory(self.store, Subcategory(name="Soft"))
        with self.assertRaises(ValidationError):
            content.create_subcategory(
                self.store, Subcategory(name="Soft", parent_category_id="missing")
            )

    def test_create_inherits_cover_and_flags_parent(self):
        doc_id = content.create_subcategory(
            self.store, Subcategory(name="Soft", parent_category_id=self.parent)
        )
        doc = self.store.get_document("subcategories", doc_id)
        self.assertEqual(doc["cover_image"], "https://img/p.jpg")
        self.assertEqual(doc["parentCategoryId"], self.parent)
        self.assertTrue(
            self.store.get_document("categories", self.parent)["hasSubcategories"]
        )

        content.delete_subcategory(self.store, doc_id)
        self.assertFalse(
            self.store.get_document("categories", self.parent)["hasSubcategories"]
        )


class FilterServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.category = content.create_category(
            self.store, Category(name="Portraits", cover_image="https://img/cat.jpg")
        )
        self.subcategory = content.create_subcategory(
            self.store,
            Subcategory(
                name="Soft",
                parent_category_id=self.category,
                cover_image="https://img/sub.jpg",
            ),
        )

    def test_thumbnail_falls_back_to_subcategory_then_category(self):
        with_sub = content.create_filter(
            self.store,
            Filter(name="Glow", category=self.category, subcategory=self.subcategory),
        )
        without_sub = content.create_filter(
            self.store, Filter(name="Grain", category=self.category)
        )
        self.assertEqual(
            self.store.get_document("filters_feed", with_sub)["thumb_128"],
            "https://img/sub.jpg",
        )
        doc = self.store.get_document("filters_feed", without_sub)
        self.assertEqual(doc["thumb_128"], "https://img/cat.jpg")
        self.assertNotIn("subcategory", doc)
        self.assertEqual(doc["order"], 1)

    def test_references_are_checked(self):
        with self.assertRaises(ValidationError):
            content.create_filter(self.store, Filter(name="X", category="missing"))
        other = content.create_category(self.store, Category(name="Other"))
        with self.assertRaises(ValidationError):
            content.create_filter(
                self.store,
                Filter(name="X", category=other, subcategory=self.subcategory),
            )

    def test_update_clears_subcategory(self):
        doc_id = content.create_filter(
            self.store,
            Filter(name="Glow", category=self.category, subcategory=self.subcategory),
        )
        content.update_filter(
            self.store, doc_id, Filter(name="Glow", category=self.category, is_pro=True)
        )
        doc = self.store.get_document("filters_feed", doc_id)
        self.assertIsNone(doc["subcategory"])
        self.assertTrue(doc["isPro"])


class SliderServiceTests(unittest.TestCase):
    def test_crud(self):
        store = InMemoryDocumentStore()
        doc_id = content.create_slider(store, OnboardingSlider(title="Welcome"))
        content.update_slider(store, doc_id, OnboardingSlider(title="Hello", show_ui=False))
        doc = store.get_document("onboarding_sliders", doc_id)
        self.assertEqual((doc["title"], doc["showUI"], doc["order"]), ("Hello", False, 0))
        content.delete_slider(store, doc_id)
        self.assertIsNone(store.get_document("onboarding_sliders", doc_id))


class PromptOptionServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.category = content.create_prompt_category(
            self.store, PromptCategory(name="Camera", multi_select=True)
        )

    def test_add_generates_id_and_order(self):
        first = content.add_prompt_option(
            self.store, self.category, PromptOption(id="", label="85mm"), now=1.5
        )
        second = content.add_prompt_option(
            self.store, self.category, PromptOption(id="wide", label="24mm")
        )
        self.assertEqual((first.id, first.order), ("option_1500", 0))
        self.assertEqual((second.id, second.order), ("wide", 1))

        stored = self.store.get_document("promptCategories", self.category)
        self.assertEqual([o["id"] for o in stored["options"]], ["option_1500", "wide"])
        self.assertTrue(stored["multiSelect"])

    def test_duplicate_option_id(self):
        content.add_prompt_option(self.store, self.category, PromptOption(id="a", label="A"))
        with self.assertRaises(ValidationError):
            content.add_prompt_option(
                self.store, self.category, PromptOption(id="a", label="Again")
            )

    def test_update_keeps_order_and_delete(self):
        content.add_prompt_option(self.store, self.category, PromptOption(id="a", label="A"))
        content.add_prompt_option(self.store, self.category, PromptOption(id="b", label="B"))
        content.update_prompt_option(
            self.store,
            self.category,
            "b",
            PromptOption(id="ignored", label="Bee", default_selected=True),
        )
        options = content.get_prompt_category(self.store, self.category).options
        self.assertEqual(
            [(o.id, o.label, o.order, o.default_selected) for o in options],
            [("a", "A", 0, False), ("b", "Bee", 1, True)],
        )

        content.delete_prompt_option(self.store, self.category, "a")
        with self.assertRaises(NotFoundError):
            content.delete_prompt_option(self.store, self.category, "a")
        with self.assertRaises(NotFoundError):
            content.update_prompt_option(
                self.store, self.category, "a", PromptOption(id="a", label="A")
            )

    def test_updating_category_leaves_options(self):
        content.add_prompt_option(self.store, self.category, PromptOption(id="a", label="A"))
        content.update_prompt_category(
            self.store, self.category, PromptCategory(name="Lens", options=[])
        )
        category = content.get_prompt_category(self.store, self.category)
        self.assertEqual(category.name, "Lens")
        self.assertEqual([o.id for o in category.options], ["a"])

    def test_missing_category(self):
        with self.assertRaises(NotFoundError):
            content.add_prompt_option(self.store, "nope", PromptOption(id="a", label="A"))


class UploadImageTests(unittest.TestCase):
    def test_rejects_unknown_kind_and_empty_data(self):
        storage = InMemoryStorageClient()
        with self.assertRaises(ValidationError):
            content.upload_image(storage, "avatar", b"data")
        with self.assertRaises(ValidationError):
            content.upload_image(storage, "filter", b"")
        with self.assertRaises(ValidationError):
            content.upload_image(storage, "filter", b"not an image", "x.png", "image/png")
        self.assertEqual(storage.stored_objects, {})


if __name__ == "__main__":
    unittest.main()
