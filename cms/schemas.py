"""
Pydantic schemas for the CMS API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class CategoryPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    slug: str = ""
    cover_image: str = ""
    description: str = ""
    order: Optional[int] = Field(default=None, ge=0)
    visible: bool = True
    tags: list[str] = Field(default_factory=list)


class SubcategoryPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    parent_category_id: str
    slug: str = ""
    cover_image: str = ""
    description: str = ""
    order: Optional[int] = Field(default=None, ge=0)
    visible: bool = True
    tags: list[str] = Field(default_factory=list)


class FilterPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    category: str
    subcategory: Optional[str] = None
    thumb_128: str = ""
    tags: list[str] = Field(default_factory=list)
    prompt: str = ""
    is_pro: bool = False
    popularity: int = 0
    order: Optional[int] = Field(default=None, ge=0)


class SliderPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    text: str = ""
    before_image_url: str = ""
    after_image_url: str = ""
    order: Optional[int] = Field(default=None, ge=0)
    visible: bool = True
    show_ui: bool = True


class PromptCategoryPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    icon: str = ""
    order: Optional[int] = Field(default=None, ge=0)
    visible: bool = True
    multi_select: bool = False
    tags: list[str] = Field(default_factory=list)


class PromptOptionPayload(BaseModel):
    id: Optional[str] = Field(default=None, max_length=64)
    label: str = Field(..., min_length=1, max_length=128)
    value: str = ""
    order: Optional[int] = Field(default=None, ge=0)
    visible: bool = True
    default_selected: bool = False
    tags: list[str] = Field(default_factory=list)


class ReorderRequest(BaseModel):
    active_id: str
    over_id: Optional[str] = None


class ReorderResponse(BaseModel):
    persisted: bool


class CreatedResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: Literal["ok"]


class RecordListResponse(BaseModel):
    items: list[dict]


class UploadResponse(BaseModel):
    url: str


class UsersResponse(BaseModel):
    users: list[dict]
    total: int


class UserMetricsResponse(BaseModel):
    metrics: dict
