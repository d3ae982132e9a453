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

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from shared.constants import IMAGE_QUALITY

logger = logging.getLogger(__name__)

# The ANIM chunk follows VP8X, well inside the first 64 bytes.
WEBP_HEADER_SCAN_BYTES = 64

_FORMATS = {
    "WEBP": ("image/webp", "webp"),
    "PNG": ("image/png", "png"),
    "JPEG": ("image/jpeg", "jpg"),
}


class ImageProcessingError(Exception):
    """Raised when uploaded bytes cannot be decoded or re-encoded."""


@dataclass
class PreparedImage:
    data: bytes
    content_type: str
    extension: str


def _looks_like_webp(filename: Optional[str], content_type: Optional[str]) -> bool:
    if content_type and "webp" in content_type.lower():
        return True
    return bool(filename) and filename.lower().endswith(".webp")


def is_animated_webp(
    data: bytes,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> bool:
    """
    Returns True for animated WebP files.

    Animated WebP files are a RIFF container with a WEBP identifier at offset 8
    and an ANIM chunk in the extended header.
    """
    if not _looks_like_webp(filename, content_type):
        return False
    header = data[:WEBP_HEADER_SCAN_BYTES]
    if header[:4] != b"RIFF" or header[8:12] != b"WEBP":
        return False
    return b"ANIM" in header


def _crop_box(
    width: int, height: int, target_width: int, target_height: int
) -> Tuple[float, float, float, float]:
    """Centered box with the target aspect ratio inside a width x height image."""
    target_aspect = target_width / target_height
    image_aspect = width / height
    left, top = 0.0, 0.0
    crop_width, crop_height = float(width), float(height)
    if image_aspect > target_aspect:
        # Wider than the target: trim the sides.
        crop_width = height * target_aspect
        left = (width - crop_width) / 2
    elif image_aspect < target_aspect:
        # Taller than the target: trim top and bottom.
        crop_height = width / target_aspect
        top = (height - crop_height) / 2
    return (left, top, left + crop_width, top + crop_height)


def crop_and_resize(
    data: bytes,
    width: int,
    height: int,
    fmt: str = "JPEG",
    quality: int = IMAGE_QUALITY,
) -> bytes:
    """
    Center-crops the image to the target aspect ratio, then scales it to exactly
    width x height without deformation.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            box = _crop_box(img.width, img.height, width, height)
            resized = img.resize((width, height), Image.Resampling.LANCZOS, box=box)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Failed to load image: {e}") from e

    if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")

    out = io.BytesIO()
    try:
        resized.save(out, format=fmt, quality=quality)
    except (OSError, KeyError) as e:
        raise ImageProcessingError(f"Failed to encode image as {fmt}: {e}") from e
    return out.getvalue()


def output_format_for(
    filename: Optional[str], content_type: Optional[str], keep_png: bool
) -> str:
    """WebP stays WebP, PNG stays PNG when allowed, everything else is JPEG."""
    if _looks_like_webp(filename, content_type):
        return "WEBP"
    is_png = (content_type or "").lower() == "image/png" or (
        (filename or "").lower().endswith(".png")
    )
    if keep_png and is_png:
        return "PNG"
    return "JPEG"


def prepare_upload(
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    size: Tuple[int, int],
    keep_png: bool = True,
) -> PreparedImage:
    """Resizes an uploaded image for storage. Animated WebP passes through as-is."""
    if is_animated_webp(data, filename, content_type):
        logger.info("Keeping animated WebP %s unmodified", filename)
        content_type, extension = _FORMATS["WEBP"]
        return PreparedImage(data=data, content_type=content_type, extension=extension)

    fmt = output_format_for(filename, content_type, keep_png)
    width, height = size
    resized = crop_and_resize(data, width, height, fmt=fmt)
    content_type, extension = _FORMATS[fmt]
    return PreparedImage(data=resized, content_type=content_type, extension=extension)
