# -*- coding: utf-8 -*-
"""Image validation, decoding and data-URL helpers."""

from __future__ import annotations

import base64
import re
from pathlib import Path

import cv2
import numpy as np

from screenstudio.constants import (
    IMAGE_EXTENSION_TYPES,
    MAX_FILE_SIZE,
    TABLET_ASPECT_THRESHOLD,
    VALID_IMAGE_TYPES,
)
from screenstudio.models.image import ImageHandle

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


class ImageValidationError(ValueError):
    """Raised when an upload has an unsupported type or size."""


class ImageDecodeError(ValueError):
    """Raised when image bytes cannot be decoded."""


def guess_mime_type(filename: str) -> str | None:
    return IMAGE_EXTENSION_TYPES.get(Path(filename).suffix.lower())


def validate_upload(filename: str, data: bytes) -> str:
    """Check type and size of one uploaded file and return its MIME type."""
    mime_type = guess_mime_type(filename)
    if mime_type not in VALID_IMAGE_TYPES:
        raise ImageValidationError(f"{filename}: unsupported image type (use PNG, JPEG or WebP)")
    if len(data) > MAX_FILE_SIZE:
        size_mb = len(data) / (1024 * 1024)
        raise ImageValidationError(f"{filename}: file is {size_mb:.1f} MB, limit is 20 MB")
    if not data:
        raise ImageValidationError(f"{filename}: file is empty")
    return mime_type


def decode_image_bytes(data: bytes) -> ImageHandle:
    """Decode encoded image bytes into an ImageHandle."""
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise ImageDecodeError("No image data")
    pixels = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if pixels is None:
        raise ImageDecodeError("Image data could not be decoded")
    height, width = pixels.shape[:2]
    return ImageHandle(pixels=pixels, width=int(width), height=int(height))


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(data_url: str | None) -> tuple[str, bytes] | None:
    """Split a base64 data URL into (mime type, raw bytes)."""
    if not data_url or not isinstance(data_url, str):
        return None
    match = _DATA_URL_RE.match(data_url)
    if not match:
        return None
    try:
        return match.group(1), base64.b64decode(match.group(2), validate=False)
    except ValueError:
        return None


def infer_device_type(width: int, height: int) -> str:
    """Pick a mockup family from the image aspect ratio."""
    if width <= 0 or height <= 0:
        return "iphone"
    return "ipad" if height / width < TABLET_ASPECT_THRESHOLD else "iphone"
