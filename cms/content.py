"""
Create/update/delete services for every content type managed by the CMS.

Ordered records get `order = max(order) + 1` on create unless the caller
passes one explicitly. Every write stamps `updatedAt` with the server time.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from cms import images
from cms.ordering import next_order
from cms.storage import StorageClient, build_object_path
from cms.store import DocumentNotFoundError, DocumentStore
from shared.constants import (
    CATEGORIES_COLLECTION,
    CATEGORY_IMAGE_FOLDER,
    FILTER_IMAGE_FOLDER,
    FILTERS_COLLECTION,
    ONBOARDING_SLIDERS_COLLECTION,
    ORDER_FIELD,
    PROMPT_CATEGORIES_COLLECTION,
    PROMPT_OPTIONS_FIELD,
    SLIDER_IMAGE_FOLDER,
    SLIDER_IMAGE_SIZE,
    SUBCATEGORIES_COLLECTION,
    THUMBNAIL_SIZE,
    UPDATED_AT_FIELD,
)
from shared.types import (
    Category,
    Filter,
    OnboardingSlider,
    PromptCategory,
    PromptOption,
    Subcategory,
    from_document,
    to_document,
)

logger = logging.getLogger(__name__)

# kind -> (folder, file name prefix, (width, height), keep PNG)
UPLOAD_KINDS = {
    "category": (CATEGORY_IMAGE_FOLDER, None, THUMBNAIL_SIZE, True),
    "filter": (FILTER_IMAGE_FOLDER, None, THUMBNAIL_SIZE, True),
    "slider-before": (SLIDER_IMAGE_FOLDER, "before", SLIDER_IMAGE_SIZE, False),
    "slider-after": (SLIDER_IMAGE_FOLDER, "after", SLIDER_IMAGE_SIZE, False),
}


class ContentError(Exception):
    pass


class NotFoundError(ContentError):
    pass


class ValidationError(ContentError):
    pass


def slugify(name: str) -> str:
    """Lowercase identifier: `Retro Film  Looks!` -> `retro-film-looks`."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


def _require(store: DocumentStore, collection: str, doc_id: str) -> dict:
    doc = store.get_document(collection, doc_id)
    if doc is None:
        raise NotFoundError(f"{collection}/{doc_id} not found")
    return doc


def _create_ordered(store: DocumentStore, collection: str, doc: dict) -> str:
    if doc.get(ORDER_FIELD) is None:
        doc[ORDER_FIELD] = next_order(store.list_documents(collection))
    doc[UPDATED_AT_FIELD] = SERVER_TIMESTAMP
    doc_id = store.add_document(collection, doc)
    logger.info("Created %s/%s (order=%s)", collection, doc_id, doc[ORDER_FIELD])
    return doc_id


def _update(store: DocumentStore, collection: str, doc_id: str, doc: dict) -> None:
    # An omitted order keeps the record where it is.
    if doc.get(ORDER_FIELD) is None:
        doc.pop(ORDER_FIELD, None)
    doc[UPDATED_AT_FIELD] = SERVER_TIMESTAMP
    try:
        store.update_document(collection, doc_id, doc)
    except DocumentNotFoundError as e:
        raise NotFoundError(f"{collection}/{doc_id} not found") from e


def _delete(store: DocumentStore, collection: str, doc_id: str) -> None:
    _require(store, collection, doc_id)
    store.delete_document(collection, doc_id)
    logger.info("Deleted %s/%s", collection, doc_id)


def _normalize_slug(slug: str, name: str) -> str:
    slug = (slug or "").strip().lower()
    return slug or slugify(name)


# Categories


def create_category(store: DocumentStore, category: Category) -> str:
    category.slug = _normalize_slug(category.slug, category.name)
    return _create_ordered(store, CATEGORIES_COLLECTION, to_document(category))


def update_category(store: DocumentStore, category_id: str, category: Category) -> None:
    category.slug = _normalize_slug(category.slug, category.name)
    _update(store, CATEGORIES_COLLECTION, category_id, to_document(category))


def delete_category(store: DocumentStore, category_id: str) -> None:
    _delete(store, CATEGORIES_COLLECTION, category_id)


def sync_has_subcategories(store: DocumentStore) -> int:
    """
    Recomputes `hasSubcategories` on every category. Returns the number of
    categories that changed.
    """
    parents = {
        doc.get("parentCategoryId")
        for doc in store.list_documents(SUBCATEGORIES_COLLECTION)
    }
    changed = 0
    for category in store.list_documents(CATEGORIES_COLLECTION):
        actual = category["id"] in parents
        if category.get("hasSubcategories") != actual:
            store.update_document(
                CATEGORIES_COLLECTION, category["id"], {"hasSubcategories": actual}
            )
            changed += 1
    return changed


# Subcategories


def _require_parent(store: DocumentStore, subcategory: Subcategory) -> dict:
    if not subcategory.parent_category_id:
        raise ValidationError("Please select a parent category for this subcategory")
    parent = store.get_document(CATEGORIES_COLLECTION, subcategory.parent_category_id)
    if parent is None:
        raise ValidationError(
            f"Parent category {subcategory.parent_category_id} does not exist"
        )
    return parent


def create_subcategory(store: DocumentStore, subcategory: Subcategory) -> str:
    parent = _require_parent(store, subcategory)
    subcategory.slug = _normalize_slug(subcategory.slug, subcategory.name)
    if not subcategory.cover_image:
        subcategory.cover_image = parent.get("cover_image") or ""
    doc_id = _create_ordered(store, SUBCATEGORIES_COLLECTION, to_document(subcategory))
    sync_has_subcategories(store)
    return doc_id


def update_subcategory(
    store: DocumentStore, subcategory_id: str, subcategory: Subcategory
) -> None:
    _require_parent(store, subcategory)
    subcategory.slug = _normalize_slug(subcategory.slug, subcategory.name)
    _update(store, SUBCATEGORIES_COLLECTION, subcategory_id, to_document(subcategory))
    sync_has_subcategories(store)


def delete_subcategory(store: DocumentStore, subcategory_id: str) -> None:
    _delete(store, SUBCATEGORIES_COLLECTION, subcategory_id)
    sync_has_subcategories(store)


# Filters


def _check_filter_refs(store: DocumentStore, flt: Filter) -> tuple[dict, Optional[dict]]:
    if not flt.category:
        raise ValidationError("A filter needs a category")
    category = store.get_document(CATEGORIES_COLLECTION, flt.category)
    if category is None:
        raise ValidationError(f"Category {flt.category} does not exist")
    subcategory = None
    if flt.subcategory:
        subcategory = store.get_document(SUBCATEGORIES_COLLECTION, flt.subcategory)
        if subcategory is None:
            raise ValidationError(f"Subcategory {flt.subcategory} does not exist")
        if subcategory.get("parentCategoryId") != flt.category:
            raise ValidationError(
                f"Subcategory {flt.subcategory} does not belong to {flt.category}"
            )
    return category, subcategory


def _filter_document(flt: Filter) -> dict:
    doc = to_document(flt)
    if not flt.subcategory:
        # Only stored when set.
        doc.pop("subcategory", None)
    return doc


def create_filter(store: DocumentStore, flt: Filter) -> str:
    category, subcategory = _check_filter_refs(store, flt)
    if not flt.thumb_128:
        # Subcategory cover first, then the category cover.
        flt.thumb_128 = (
            (subcategory or {}).get("cover_image")
            or category.get("cover_image")
            or ""
        )
    return _create_ordered(store, FILTERS_COLLECTION, _filter_document(flt))


def update_filter(store: DocumentStore, filter_id: str, flt: Filter) -> None:
    _check_filter_refs(store, flt)
    # Cleared subcategories are stored as null.
    _update(store, FILTERS_COLLECTION, filter_id, to_document(flt))


def delete_filter(store: DocumentStore, filter_id: str) -> None:
    _delete(store, FILTERS_COLLECTION, filter_id)


# Onboarding sliders


def create_slider(store: DocumentStore, slider: OnboardingSlider) -> str:
    return _create_ordered(store, ONBOARDING_SLIDERS_COLLECTION, to_document(slider))


def update_slider(
    store: DocumentStore, slider_id: str, slider: OnboardingSlider
) -> None:
    _update(store, ONBOARDING_SLIDERS_COLLECTION, slider_id, to_document(slider))


def delete_slider(store: DocumentStore, slider_id: str) -> None:
    _delete(store, ONBOARDING_SLIDERS_COLLECTION, slider_id)


# Prompt categories and their options


def get_prompt_category(store: DocumentStore, category_id: str) -> PromptCategory:
    doc = _require(store, PROMPT_CATEGORIES_COLLECTION, category_id)
    doc.setdefault(PROMPT_OPTIONS_FIELD, [])
    return from_document(PromptCategory, doc)


def create_prompt_category(store: DocumentStore, category: PromptCategory) -> str:
    return _create_ordered(store, PROMPT_CATEGORIES_COLLECTION, to_document(category))


def update_prompt_category(
    store: DocumentStore, category_id: str, category: PromptCategory
) -> None:
    """Updates the category fields; its options are left untouched."""
    doc = to_document(category)
    doc.pop(PROMPT_OPTIONS_FIELD, None)
    _update(store, PROMPT_CATEGORIES_COLLECTION, category_id, doc)


def delete_prompt_category(store: DocumentStore, category_id: str) -> None:
    _delete(store, PROMPT_CATEGORIES_COLLECTION, category_id)


def _write_options(
    store: DocumentStore, category_id: str, options: list[PromptOption]
) -> None:
    _update(
        store,
        PROMPT_CATEGORIES_COLLECTION,
        category_id,
        {PROMPT_OPTIONS_FIELD: [to_document(option) for option in options]},
    )


def add_prompt_option(
    store: DocumentStore,
    category_id: str,
    option: PromptOption,
    now: Optional[float] = None,
) -> PromptOption:
    category = get_prompt_category(store, category_id)
    if not option.id:
        millis = int((time.time() if now is None else now) * 1000)
        option.id = f"option_{millis}"
    if any(existing.id == option.id for existing in category.options):
        raise ValidationError(f"Option {option.id} already exists in {category_id}")
    if option.order is None:
        option.order = next_order([to_document(o) for o in category.options])
    _write_options(store, category_id, [*category.options, option])
    return option


def update_prompt_option(
    store: DocumentStore, category_id: str, option_id: str, option: PromptOption
) -> None:
    category = get_prompt_category(store, category_id)
    current = next((o for o in category.options if o.id == option_id), None)
    if current is None:
        raise NotFoundError(f"Option {option_id} not found in {category_id}")
    option.id = option_id
    if option.order is None:
        option.order = current.order
    options = [option if o.id == option_id else o for o in category.options]
    _write_options(store, category_id, options)


def delete_prompt_option(store: DocumentStore, category_id: str, option_id: str) -> None:
    category = get_prompt_category(store, category_id)
    options = [o for o in category.options if o.id != option_id]
    if len(options) == len(category.options):
        raise NotFoundError(f"Option {option_id} not found in {category_id}")
    _write_options(store, category_id, options)


# Image uploads


def upload_image(
    storage: StorageClient,
    kind: str,
    data: bytes,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> str:
    """Resizes an uploaded image for `kind` and returns its public URL."""
    if kind not in UPLOAD_KINDS:
        raise ValidationError(f"Unknown upload kind: {kind}")
    if not data:
        raise ValidationError("Empty upload")
    folder, name_prefix, size, keep_png = UPLOAD_KINDS[kind]
    try:
        prepared = images.prepare_upload(
            data, filename, content_type, size, keep_png=keep_png
        )
    except images.ImageProcessingError as e:
        raise ValidationError(str(e)) from e
    path = build_object_path(folder, prepared.extension, name_prefix=name_prefix)
    url = storage.upload_bytes(path, prepared.data, prepared.content_type)
    logger.info("Uploaded %s image to %s", kind, path)
    return url
