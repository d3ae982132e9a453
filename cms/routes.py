"""
HTTP routes for the CMS API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from cms import content
from cms.content import ContentError, NotFoundError
from cms.dependencies import (
    close_reorder_session,
    get_document_store,
    get_reorder_session,
    get_storage_client,
)
from cms.metrics import compute_metrics, sort_users
from cms.schemas import (
    CategoryPayload,
    CreatedResponse,
    FilterPayload,
    PromptCategoryPayload,
    PromptOptionPayload,
    RecordListResponse,
    ReorderRequest,
    ReorderResponse,
    SliderPayload,
    StatusResponse,
    SubcategoryPayload,
    UploadResponse,
    UserMetricsResponse,
    UsersResponse,
)
from cms.storage import StorageClient, StorageError
from cms.store import DocumentStore, Scope
from shared.constants import (
    CATEGORIES_COLLECTION,
    FILTERS_COLLECTION,
    ONBOARDING_SLIDERS_COLLECTION,
    PROMPT_CATEGORIES_COLLECTION,
    PROMPT_OPTIONS_FIELD,
    SUBCATEGORIES_COLLECTION,
    USERS_COLLECTION,
)
from shared.types import (
    Category,
    Filter,
    OnboardingSlider,
    PromptCategory,
    PromptOption,
    Subcategory,
    User,
    from_document,
    to_document,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: ContentError) -> HTTPException:
    status_code = 404 if isinstance(e, NotFoundError) else 400
    return HTTPException(status_code=status_code, detail=str(e))


def _options_scope(category_id: str) -> Scope:
    return Scope(
        PROMPT_CATEGORIES_COLLECTION,
        parent_id=category_id,
        array_field=PROMPT_OPTIONS_FIELD,
    )


def _ordered_items(store: DocumentStore, scope: Scope) -> list[dict]:
    return get_reorder_session(scope, store).view.items


def _reorder(
    store: DocumentStore, scope: Scope, payload: ReorderRequest
) -> ReorderResponse:
    session = get_reorder_session(scope, store)
    persisted = session.drag_end(payload.active_id, payload.over_id)
    return ReorderResponse(persisted=persisted)


@router.get("/health", response_model=StatusResponse)
def health():
    return StatusResponse(status="ok")


# Categories


@router.get("/categories", response_model=RecordListResponse)
def list_categories(store: DocumentStore = Depends(get_document_store)):
    return RecordListResponse(items=_ordered_items(store, Scope(CATEGORIES_COLLECTION)))


@router.post("/categories", response_model=CreatedResponse, status_code=201)
def create_category(
    payload: CategoryPayload, store: DocumentStore = Depends(get_document_store)
):
    try:
        doc_id = content.create_category(store, Category(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=doc_id)


@router.put("/categories/{category_id}", response_model=StatusResponse)
def update_category(
    category_id: str,
    payload: CategoryPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_category(store, category_id, Category(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete("/categories/{category_id}", response_model=StatusResponse)
def delete_category(category_id: str, store: DocumentStore = Depends(get_document_store)):
    try:
        content.delete_category(store, category_id)
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.post("/categories/reorder", response_model=ReorderResponse)
def reorder_categories(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    return _reorder(store, Scope(CATEGORIES_COLLECTION), payload)


# Subcategories


@router.get("/subcategories", response_model=RecordListResponse)
def list_subcategories(
    parent_category_id: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_document_store),
):
    items = _ordered_items(store, Scope(SUBCATEGORIES_COLLECTION))
    if parent_category_id:
        items = [i for i in items if i.get("parentCategoryId") == parent_category_id]
    return RecordListResponse(items=items)


@router.post("/subcategories", response_model=CreatedResponse, status_code=201)
def create_subcategory(
    payload: SubcategoryPayload, store: DocumentStore = Depends(get_document_store)
):
    try:
        doc_id = content.create_subcategory(store, Subcategory(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=doc_id)


@router.put("/subcategories/{subcategory_id}", response_model=StatusResponse)
def update_subcategory(
    subcategory_id: str,
    payload: SubcategoryPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_subcategory(
            store, subcategory_id, Subcategory(**payload.model_dump())
        )
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete("/subcategories/{subcategory_id}", response_model=StatusResponse)
def delete_subcategory(
    subcategory_id: str, store: DocumentStore = Depends(get_document_store)
):
    try:
        content.delete_subcategory(store, subcategory_id)
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.post("/subcategories/reorder", response_model=ReorderResponse)
def reorder_subcategories(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    return _reorder(store, Scope(SUBCATEGORIES_COLLECTION), payload)


# Filters


@router.get("/filters", response_model=RecordListResponse)
def list_filters(
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    store: DocumentStore = Depends(get_document_store),
):
    # Filtering narrows the listing only; reorders always act on the full feed.
    items = _ordered_items(store, Scope(FILTERS_COLLECTION))
    if category:
        items = [i for i in items if i.get("category") == category]
    if subcategory:
        items = [i for i in items if i.get("subcategory") == subcategory]
    return RecordListResponse(items=items)


@router.post("/filters", response_model=CreatedResponse, status_code=201)
def create_filter(
    payload: FilterPayload, store: DocumentStore = Depends(get_document_store)
):
    try:
        doc_id = content.create_filter(store, Filter(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=doc_id)


@router.put("/filters/{filter_id}", response_model=StatusResponse)
def update_filter(
    filter_id: str,
    payload: FilterPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_filter(store, filter_id, Filter(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete("/filters/{filter_id}", response_model=StatusResponse)
def delete_filter(filter_id: str, store: DocumentStore = Depends(get_document_store)):
    try:
        content.delete_filter(store, filter_id)
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.post("/filters/reorder", response_model=ReorderResponse)
def reorder_filters(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    return _reorder(store, Scope(FILTERS_COLLECTION), payload)


# Onboarding sliders


@router.get("/onboarding-sliders", response_model=RecordListResponse)
def list_sliders(store: DocumentStore = Depends(get_document_store)):
    return RecordListResponse(
        items=_ordered_items(store, Scope(ONBOARDING_SLIDERS_COLLECTION))
    )


@router.post("/onboarding-sliders", response_model=CreatedResponse, status_code=201)
def create_slider(
    payload: SliderPayload, store: DocumentStore = Depends(get_document_store)
):
    try:
        doc_id = content.create_slider(store, OnboardingSlider(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=doc_id)


@router.put("/onboarding-sliders/{slider_id}", response_model=StatusResponse)
def update_slider(
    slider_id: str,
    payload: SliderPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_slider(store, slider_id, OnboardingSlider(**payload.model_dump()))
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete("/onboarding-sliders/{slider_id}", response_model=StatusResponse)
def delete_slider(slider_id: str, store: DocumentStore = Depends(get_document_store)):
    try:
        content.delete_slider(store, slider_id)
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.post("/onboarding-sliders/reorder", response_model=ReorderResponse)
def reorder_sliders(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    return _reorder(store, Scope(ONBOARDING_SLIDERS_COLLECTION), payload)


# Prompt categories


@router.get("/prompt-categories", response_model=RecordListResponse)
def list_prompt_categories(store: DocumentStore = Depends(get_document_store)):
    return RecordListResponse(
        items=_ordered_items(store, Scope(PROMPT_CATEGORIES_COLLECTION))
    )


@router.get("/prompt-categories/{category_id}")
def get_prompt_category(
    category_id: str, store: DocumentStore = Depends(get_document_store)
) -> dict:
    try:
        category = content.get_prompt_category(store, category_id)
    except ContentError as e:
        raise _http_error(e)
    record = {"id": category.id, **to_document(category)}
    record[PROMPT_OPTIONS_FIELD] = _ordered_items(store, _options_scope(category_id))
    return record


@router.post("/prompt-categories", response_model=CreatedResponse, status_code=201)
def create_prompt_category(
    payload: PromptCategoryPayload, store: DocumentStore = Depends(get_document_store)
):
    try:
        doc_id = content.create_prompt_category(
            store, PromptCategory(**payload.model_dump())
        )
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=doc_id)


@router.put("/prompt-categories/{category_id}", response_model=StatusResponse)
def update_prompt_category(
    category_id: str,
    payload: PromptCategoryPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_prompt_category(
            store, category_id, PromptCategory(**payload.model_dump())
        )
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete("/prompt-categories/{category_id}", response_model=StatusResponse)
def delete_prompt_category(
    category_id: str, store: DocumentStore = Depends(get_document_store)
):
    try:
        content.delete_prompt_category(store, category_id)
    except ContentError as e:
        raise _http_error(e)
    close_reorder_session(_options_scope(category_id))
    return StatusResponse(status="ok")


@router.post("/prompt-categories/reorder", response_model=ReorderResponse)
def reorder_prompt_categories(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    return _reorder(store, Scope(PROMPT_CATEGORIES_COLLECTION), payload)


# Prompt options


@router.get("/prompt-categories/{category_id}/options", response_model=RecordListResponse)
def list_prompt_options(
    category_id: str, store: DocumentStore = Depends(get_document_store)
):
    if store.get_document(PROMPT_CATEGORIES_COLLECTION, category_id) is None:
        raise HTTPException(status_code=404, detail="Prompt category not found")
    return RecordListResponse(items=_ordered_items(store, _options_scope(category_id)))


@router.post(
    "/prompt-categories/{category_id}/options",
    response_model=CreatedResponse,
    status_code=201,
)
def add_prompt_option(
    category_id: str,
    payload: PromptOptionPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        option = content.add_prompt_option(
            store, category_id, PromptOption(**payload.model_dump())
        )
    except ContentError as e:
        raise _http_error(e)
    return CreatedResponse(id=option.id)


@router.put(
    "/prompt-categories/{category_id}/options/{option_id}",
    response_model=StatusResponse,
)
def update_prompt_option(
    category_id: str,
    option_id: str,
    payload: PromptOptionPayload,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.update_prompt_option(
            store, category_id, option_id, PromptOption(**payload.model_dump())
        )
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.delete(
    "/prompt-categories/{category_id}/options/{option_id}",
    response_model=StatusResponse,
)
def delete_prompt_option(
    category_id: str,
    option_id: str,
    store: DocumentStore = Depends(get_document_store),
):
    try:
        content.delete_prompt_option(store, category_id, option_id)
    except ContentError as e:
        raise _http_error(e)
    return StatusResponse(status="ok")


@router.post(
    "/prompt-categories/{category_id}/options/reorder",
    response_model=ReorderResponse,
)
def reorder_prompt_options(
    category_id: str,
    payload: ReorderRequest,
    store: DocumentStore = Depends(get_document_store),
):
    if store.get_document(PROMPT_CATEGORIES_COLLECTION, category_id) is None:
        raise HTTPException(status_code=404, detail="Prompt category not found")
    return _reorder(store, _options_scope(category_id), payload)


# Uploads


@router.post("/uploads/{kind}", response_model=UploadResponse, status_code=201)
async def upload_image(
    kind: str,
    file: UploadFile = File(...),
    storage: StorageClient = Depends(get_storage_client),
):
    data = await file.read()
    try:
        url = content.upload_image(
            storage, kind, data, filename=file.filename, content_type=file.content_type
        )
    except ContentError as e:
        raise _http_error(e)
    except StorageError as e:
        logger.exception("Upload of %s image failed", kind)
        raise HTTPException(status_code=502, detail=str(e))
    return UploadResponse(url=url)


# Users


def _load_users(store: DocumentStore) -> list[User]:
    return [
        from_document(User, doc) for doc in store.list_documents(USERS_COLLECTION)
    ]


@router.get("/users", response_model=UsersResponse)
def list_users(
    sort: str = Query("createdAt"),
    direction: str = Query("desc"),
    store: DocumentStore = Depends(get_document_store),
):
    try:
        users = sort_users(_load_users(store), sort, direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    records = [
        {**to_document(user), "totalCredits": user.total_credits} for user in users
    ]
    return UsersResponse(users=records, total=len(records))


@router.get("/users/metrics", response_model=UserMetricsResponse)
def user_metrics(store: DocumentStore = Depends(get_document_store)):
    metrics = compute_metrics(_load_users(store))
    return UserMetricsResponse(metrics=asdict(metrics))
