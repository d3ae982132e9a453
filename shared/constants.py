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

# Firestore collections read by the mobile app.
CATEGORIES_COLLECTION = "categories"
SUBCATEGORIES_COLLECTION = "subcategories"
FILTERS_COLLECTION = "filters_feed"
ONBOARDING_SLIDERS_COLLECTION = "onboarding_sliders"
PROMPT_CATEGORIES_COLLECTION = "promptCategories"
USERS_COLLECTION = "users"

# Array field holding the options of a prompt category document.
PROMPT_OPTIONS_FIELD = "options"

ORDER_FIELD = "order"
UPDATED_AT_FIELD = "updatedAt"

# (width, height) of uploaded images, in pixels.
THUMBNAIL_SIZE = (192, 240)
SLIDER_IMAGE_SIZE = (620, 1344)
IMAGE_QUALITY = 90

# Storage folders for uploaded images.
CATEGORY_IMAGE_FOLDER = "categories"
FILTER_IMAGE_FOLDER = "filters"
SLIDER_IMAGE_FOLDER = "onboarding_sliders"

# Monthly price in USD per subscription tier.
TIER_MONTHLY_PRICES = {
    "basic": 4.99,
    "pro": 9.99,
    "ultra": 24.99,
}

# Sort rank per tier, highest tier first.
TIER_SORT_ORDER = {
    "ultra": 0,
    "pro": 1,
    "basic": 2,
    "free": 3,
}

# Free credits granted to every new account.
INITIAL_FREE_CREDITS = 2
