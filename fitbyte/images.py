"""
Image type detection for uploads.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError


@dataclass(frozen=True)
class ImageType:
    mime_type: str
    extension: str


ALLOWED_IMAGE_TYPES = {
    "JPEG": ImageType(mime_type="image/jpeg", extension="jpg"),
    "PNG": ImageType(mime_type="image/png", extension="png"),
}


def detect_image_format(data: bytes) -> Optional[str]:
    """Return Pillow's format name for ``data`` (e.g. ``"PNG"``), if any."""
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.format
    except (UnidentifiedImageError, OSError):
        return None


def allowed_image_type(image_format: Optional[str]) -> Optional[ImageType]:
    if not image_format:
        return None
    return ALLOWED_IMAGE_TYPES.get(image_format.upper())
