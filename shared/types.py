# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass, field, fields, is_dataclass
from enum import StrEnum
from typing import Any, List, Optional, Type, TypeVar

from dacite import Config, from_dict

T = TypeVar("T")


def _stored_as(name: str, **kwargs):
    """Field whose Firestore key differs from the Python attribute name."""
    return field(metadata={"store_key": name}, **kwargs)


def _not_stored(store_key: Optional[str] = None, **kwargs):
    """Field that is never written back to the document body."""
    metadata = {"stored": False}
    if store_key:
        metadata["store_key"] = store_key
    return field(metadata=metadata, **kwargs)


class SubscriptionTier(StrEnum):
    ULTRA = "ultra"
    PRO = "pro"
    BASIC = "basic"
    FREE = "free"


@dataclass
class Category:
    name: str
    slug: str = ""
    cover_image: str = ""
    description: str = ""
    order: Optional[int] = None
    visible: bool = True
    has_subcategories: bool = _stored_as("hasSubcategories", default=False)
    tags: List[str] = field(default_factory=list)
    id: Optional[str] = _not_stored(default=None)
    updated_at: Any = _not_stored("updatedAt", default=None)


@dataclass
class Subcategory:
    name: str
    parent_category_id: str = _stored_as("parentCategoryId", default="")
    slug: str = ""
    cover_image: str = ""
    description: str = ""
    order: Optional[int] = None
    visible: bool = True
    tags: List[str] = field(default_factory=list)
    id: Optional[str] = _not_stored(default=None)
    updated_at: Any = _not_stored("updatedAt", default=None)


@dataclass
class Filter:
    name: str
    category: str
    subcategory: Optional[str] = None
    thumb_128: str = ""
    tags: List[str] = field(default_factory=list)
    prompt: str = ""
    is_pro: bool = _stored_as("isPro", default=False)
    popularity: int = 0
    order: Optional[int] = None
    id: Optional[str] = _not_stored(default=None)
    updated_at: Any = _not_stored("updatedAt", default=None)


@dataclass
class OnboardingSlider:
    title: str
    text: str = ""
    before_image_url: str = ""
    after_image_url: str = ""
    order: Optional[int] = None
    visible: bool = True
    show_ui: bool = _stored_as("showUI", default=True)
    id: Optional[str] = _not_stored(default=None)
    updated_at: Any = _not_stored("updatedAt", default=None)


@dataclass
class PromptOption:
    """A selectable value inside a prompt category; stored inline."""

    id: str
    label: str
    value: str = ""
    order: Optional[int] = None
    visible: bool = True
    default_selected: bool = _stored_as("defaultSelected", default=False)
    tags: List[str] = field(default_factory=list)


@dataclass
class PromptCategory:
    name: str
    icon: str = ""
    order: Optional[int] = None
    visible: bool = True
    multi_select: bool = _stored_as("multiSelect", default=False)
    tags: List[str] = field(default_factory=list)
    options: List[PromptOption] = field(
        default_factory=list, metadata={"item_type": PromptOption}
    )
    id: Optional[str] = _not_stored(default=None)
    updated_at: Any = _not_stored("updatedAt", default=None)


@dataclass
class User:
    """App user as written by the mobile client. Read-only here."""

    id: Optional[str] = None
    subscription_tier: Optional[str] = _stored_as("subscriptionTier", default=None)
    free_credits: Optional[int] = _stored_as("freeCredits", default=0)
    subscription_credits: Optional[int] = _stored_as("subscriptionCredits", default=0)
    consumable_credits: Optional[int] = _stored_as("consumableCredits", default=0)
    created_at: Any = _stored_as("createdAt", default=None)
    updated_at: Any = _stored_as("updatedAt", default=None)

    @property
    def tier(self) -> str:
        return (self.subscription_tier or SubscriptionTier.FREE).lower()

    @property
    def total_credits(self) -> int:
        return (
            (self.free_credits or 0)
            + (self.subscription_credits or 0)
            + (self.consumable_credits or 0)
        )


def to_document(item) -> dict:
    """Converts a dataclass into a Firestore document body."""
    doc = {}
    for f in fields(item):
        if f.metadata.get("stored", True) is False:
            continue
        value = getattr(item, f.name)
        if isinstance(value, list):
            value = [to_document(v) if is_dataclass(v) else v for v in value]
        doc[f.metadata.get("store_key", f.name)] = value
    return doc


def _rename_from_store(data_class: type, data: dict) -> dict:
    renamed = {}
    for f in fields(data_class):
        key = f.metadata.get("store_key", f.name)
        if key not in data:
            continue
        value = data[key]
        item_type = f.metadata.get("item_type")
        if item_type is not None and value is not None:
            value = [_rename_from_store(item_type, v) for v in value]
        renamed[f.name] = value
    return renamed


def from_document(data_class: Type[T], data: dict, doc_id: Optional[str] = None) -> T:
    """Builds a dataclass from a Firestore document body."""
    renamed = _rename_from_store(data_class, data)
    if doc_id is None:
        doc_id = data.get("id")
    if doc_id is not None and "id" in {f.name for f in fields(data_class)}:
        renamed["id"] = doc_id
    return from_dict(
        data_class=data_class, data=renamed, config=Config(check_types=False)
    )
